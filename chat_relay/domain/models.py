"""统一的对话与结果数据模型。

本模块定义了中继层内部共享的标准数据结构：

- ConversationTurnRequest: 调用方提交的一轮对话请求。
- WireRequest: 发给 Azure OpenAI chat/completions 的请求体。
- InternalChatMessage: 从上游响应解析后的统一消息结构（供前端展示）。
- ChatOutcome: 一次调用的最终结果（成功消息或已分类的错误）。

Provider 适配层（schema / azure_client）只依赖这些模型，
并负责在 API JSON 和这些模型之间做转换。
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Literal, Optional, Union, TYPE_CHECKING

if TYPE_CHECKING:
    from chat_relay.domain.exceptions import BusinessError


# 成功时在真实消息之前投递的结束标记
DONE: Literal["done"] = "done"


@dataclass
class MessageDetail:
    """上游响应里与首个 choice 相关的元信息。"""

    finish_reason: Optional[str]
    created: Optional[int]
    model: Optional[str]
    index: Optional[int]


@dataclass
class InternalChatMessage:
    """归一化后的助手消息。

    - parent_message_id 与 conversation_id 均由响应 id 派生，
      上游本身不提供会话关联信息。
    - 只取 choices[0]，不支持多候选。
    """

    id: str
    text: str
    role: str
    parent_message_id: str
    conversation_id: str
    detail: MessageDetail

    def to_dict(self) -> Dict[str, Any]:
        """转换为前端使用的 camelCase 结构。"""

        return {
            "id": self.id,
            "text": self.text,
            "role": self.role,
            "parentMessageId": self.parent_message_id,
            "conversationId": self.conversation_id,
            "detail": {
                "finish_reason": self.detail.finish_reason,
                "created": self.detail.created,
                "model": self.detail.model,
                "index": self.detail.index,
            },
        }


DeliveryEvent = Union[Literal["done"], InternalChatMessage]
DeliveryCallback = Callable[[DeliveryEvent], None]


@dataclass
class ConversationTurnRequest:
    """一轮对话请求。

    - message: 新的用户输入（必填）。
    - system_message: 可选的 system 指令，只会出现一次且位于最前。
    - last_context: 可选的上一轮上下文（conversationId / parentMessageId），
      会被浅合并到最后一条消息中。
    - temperature / top_p: 采样参数，缺省时编码为 null，由上游决定默认值。
    - delivery: 可选的结果投递回调。
    """

    message: str
    system_message: Optional[str] = None
    last_context: Optional[Dict[str, Any]] = None
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    delivery: Optional[DeliveryCallback] = None

    @classmethod
    def from_options(cls, options: Dict[str, Any]) -> "ConversationTurnRequest":
        """从前端/HTTP 层传来的选项字典构造请求。

        兼容字段名：message、systemMessage、lastContext、temperature、top_p、process。
        """

        return cls(
            message=options.get("message") or "",
            system_message=options.get("systemMessage"),
            last_context=options.get("lastContext"),
            temperature=options.get("temperature"),
            top_p=options.get("top_p"),
            delivery=options.get("process"),
        )


@dataclass
class WireRequest:
    """Azure OpenAI chat/completions 请求体。"""

    messages: List[Dict[str, Any]]
    model: str
    temperature: Optional[float] = None
    top_p: Optional[float] = None

    def to_payload(self) -> Dict[str, Any]:
        # None 会被序列化为 JSON null，表示交给上游使用默认值
        return {
            "messages": [dict(m) for m in self.messages],
            "model": self.model,
            "temperature": self.temperature,
            "top_p": self.top_p,
        }


@dataclass
class ChatOutcome:
    """一次编排调用的终态：要么有 message，要么有 error。"""

    message: Optional[InternalChatMessage] = None
    error: Optional["BusinessError"] = None
    raw: Optional[dict] = field(default=None, repr=False)

    @property
    def ok(self) -> bool:
        return self.message is not None and self.error is None
