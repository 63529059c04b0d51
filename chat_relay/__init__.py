"""Chat Relay 顶层包。

该包把内部对话请求转发给 Azure OpenAI chat/completions 接口，
包括配置加载、领域模型、wire schema 转换、调用编排与结果投递。
"""

from chat_relay.domain.models import DONE, ChatOutcome, ConversationTurnRequest, InternalChatMessage
from chat_relay.providers import AzureChatClient, create_client

__all__ = [
    "DONE",
    "AzureChatClient",
    "ChatOutcome",
    "ConversationTurnRequest",
    "InternalChatMessage",
    "create_client",
]
