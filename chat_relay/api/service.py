"""对外 API 服务模块。

提供简化的函数接口供 HTTP/前端层调用。
"""

from typing import Any, Dict, Optional

from chat_relay.config.settings import settings
from chat_relay.domain.models import ConversationTurnRequest
from chat_relay.providers.azure_client import AzureChatClient


_client: Optional[AzureChatClient] = None


def get_default_client() -> AzureChatClient:
    """获取默认的 Azure OpenAI 客户端实例（单例）。"""
    global _client
    if _client is None:
        _client = AzureChatClient(settings)
    return _client


async def chat_reply_process(options: Dict[str, Any]) -> None:
    """处理一轮对话并通过 options["process"] 回调投递结果。

    Args:
        options: 前端传入的选项，支持 message、systemMessage、lastContext、
            temperature、top_p、process。

    失败时不抛出、不回调，只记录日志。
    """
    req = ConversationTurnRequest.from_options(options)
    await get_default_client().submit(req)


def chat_config() -> Dict[str, Any]:
    """模型配置查询，目前没有可返回的配置，data 恒为空。"""
    return {"type": "Success", "message": None, "data": None}


def current_model() -> str:
    """返回当前配置的模型 ID。"""
    return get_default_client().current_model()
