"""内部模型 ⇄ Azure OpenAI wire schema 的纯函数转换。

- to_wire_request: ConversationTurnRequest -> WireRequest
- from_wire_response: 响应 JSON -> InternalChatMessage

两者都没有副作用，不发请求、不写日志，便于单独测试。
"""

import math
from numbers import Real
from typing import Any, Dict, List, Mapping, Optional

from chat_relay.domain.exceptions import MalformedResponse
from chat_relay.domain.models import (
    ConversationTurnRequest,
    InternalChatMessage,
    MessageDetail,
    WireRequest,
)


def _sampling_value(value: Any) -> Optional[float]:
    # bool 是 int 的子类，需要单独排除；NaN/inf 无法编码为 JSON
    if isinstance(value, bool) or not isinstance(value, Real) or not math.isfinite(value):
        return None
    return value


def to_wire_request(req: ConversationTurnRequest, model: str) -> WireRequest:
    """构造发往上游的请求体。

    1. system_message 为非空字符串时放一条 system 消息在最前。
    2. 追加唯一一条 user 消息。
    3. last_context 为映射时浅合并进最后一条消息，同名键（包括 role/content）
       以 last_context 为准，值为 None 的键忽略。
    4. temperature / top_p 原样透传，非数值或非有限值一律编码为 None。
    """

    messages: List[Dict[str, Any]] = []
    if isinstance(req.system_message, str) and req.system_message:
        messages.append({"role": "system", "content": req.system_message})
    messages.append({"role": "user", "content": req.message})

    if isinstance(req.last_context, Mapping):
        overrides = {k: v for k, v in req.last_context.items() if v is not None}
        messages[-1] = {**messages[-1], **overrides}

    return WireRequest(
        messages=messages,
        model=model,
        temperature=_sampling_value(req.temperature),
        top_p=_sampling_value(req.top_p),
    )


def from_wire_response(data: Any) -> InternalChatMessage:
    """将上游响应解析为 InternalChatMessage，只使用 choices[0]。"""

    if not isinstance(data, Mapping):
        raise MalformedResponse(code="MALFORMED_RESPONSE", message="response body is not an object")
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        raise MalformedResponse(code="MALFORMED_RESPONSE", message="response has no choices")
    first = choices[0] if isinstance(choices[0], Mapping) else {}
    message = first.get("message")
    if not isinstance(message, Mapping):
        raise MalformedResponse(code="MALFORMED_RESPONSE", message="first choice has no message")
    response_id = data.get("id")
    if not response_id:
        raise MalformedResponse(code="MALFORMED_RESPONSE", message="response has no id")

    content = message.get("content")
    if content is not None and not isinstance(content, str):
        raise MalformedResponse(code="MALFORMED_RESPONSE", message="message content is not text")

    response_id = str(response_id)
    return InternalChatMessage(
        id=response_id,
        text=content or "",
        role=message.get("role") or "assistant",
        parent_message_id=response_id,
        conversation_id=f"{response_id}-conv",
        detail=MessageDetail(
            finish_reason=first.get("finish_reason"),
            created=data.get("created"),
            model=data.get("model"),
            index=first.get("index"),
        ),
    )
