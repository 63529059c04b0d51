"""Azure OpenAI 集成层。

该包下的模块负责：
- 维护部署配置与状态码映射 (registry)。
- 内部模型与 wire schema 的转换 (schema)。
- 调用编排与结果投递 (azure_client)。
"""

from chat_relay.config.settings import settings
from chat_relay.providers.azure_client import AzureChatClient


def create_client(cfg=None, emit_done_marker: bool = True) -> AzureChatClient:
    """根据配置创建客户端实例，默认使用全局 settings。"""

    return AzureChatClient(cfg or settings, emit_done_marker=emit_done_marker)


__all__ = ["AzureChatClient", "create_client"]
