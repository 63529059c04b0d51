"""Azure OpenAI 调用编排。

本模块负责一次完整的请求/响应周期：

1. 接收统一的 ConversationTurnRequest。
2. 通过 schema.to_wire_request 转换为 chat/completions 请求体。
3. 发起唯一一次 HTTP 调用，并把网络错误/非 2xx/解析失败分类为业务异常。
4. 成功时先投递 DONE 标记，再投递 InternalChatMessage。

失败不会抛出编排边界：submit 只记录日志、不调用回调；
需要拿到错误的调用方使用 submit_result，它返回带标签的 ChatOutcome。
"""

import json
from typing import Any, Dict

import httpx

from chat_relay.config.settings import settings
from chat_relay.domain.exceptions import (
    BusinessError,
    MalformedResponse,
    TransportError,
    UpstreamStatusError,
    ValidationError,
)
from chat_relay.domain.models import DONE, ChatOutcome, ConversationTurnRequest, WireRequest
from chat_relay.infrastructure.logging.logger import logger
from chat_relay.providers.registry import AzureDeployment, describe_status, resolve_deployment
from chat_relay.providers.schema import from_wire_response, to_wire_request


class AzureChatClient:
    """Azure OpenAI 客户端实现。

    - name: Provider 名称（供日志使用）。
    - submit: 回调式投递入口，永不抛出。
    - submit_result: 返回 ChatOutcome，便于调用方和测试观察失败。
    """

    name = "azure-openai"

    def __init__(self, cfg=settings, emit_done_marker: bool = True):
        # 部署信息只在构造时解析一次，之后所有调用共享同一个模型 ID
        self._settings = cfg
        if not getattr(cfg, "azure_api_key", None):
            raise ValidationError(code="MISSING_API_KEY", message="AZURE_API_KEY not set")
        deployment = resolve_deployment(cfg)
        if deployment is None:
            raise ValidationError(code="MISSING_ENDPOINT", message="AZ_URL or AZURE_ENDPOINT not set")
        self._deployment: AzureDeployment = deployment
        self._emit_done_marker = emit_done_marker
        logger.info(
            "Azure OpenAI client configured",
            extra={"extra": deployment.redacted(cfg.azure_api_key)},
        )

    @property
    def model(self) -> str:
        return self._deployment.model

    def current_model(self) -> str:
        """当前配置的模型 ID。"""

        return self._deployment.model

    async def submit(self, req: ConversationTurnRequest) -> None:
        """执行一次调用并通过 req.delivery 投递结果。

        成功：delivery(DONE) -> delivery(message)。
        失败：只记录日志，不调用 delivery。
        """

        outcome = await self.submit_result(req)
        if not outcome.ok or req.delivery is None:
            return
        try:
            if self._emit_done_marker:
                req.delivery(DONE)
            req.delivery(outcome.message)
        except Exception as e:
            # 回调属于调用方代码，其异常不影响本次调用的终态
            logger.error(
                f"Delivery callback failed: {e}",
                extra={"extra": {"message_id": outcome.message.id, "error": repr(e)}},
            )

    async def submit_result(self, req: ConversationTurnRequest) -> ChatOutcome:
        """执行一次调用，返回成功消息或已分类的错误。"""

        wire = to_wire_request(req, self.model)
        try:
            data = await self._post(wire)
            message = from_wire_response(data)
        except BusinessError as err:
            self._log_failure(err)
            return ChatOutcome(error=err)
        return ChatOutcome(message=message, raw=data)

    def _headers(self) -> Dict[str, str]:
        return {
            "Api-Key": self._settings.azure_api_key,
            "Content-Type": "application/json",
        }

    async def _post(self, wire: WireRequest) -> Any:
        """发送请求并返回解析后的 JSON，所有失败均转换为 BusinessError。"""

        payload = wire.to_payload()
        try:
            # 与 httpx 的 JSON 编码规则一致：不允许 NaN/inf，不支持任意对象
            json.dumps(payload, allow_nan=False)
        except (TypeError, ValueError) as e:
            raise ValidationError(code="INVALID_REQUEST", message=f"request is not JSON serializable: {e}")

        logger.info(
            "start request",
            extra={"extra": {"model": wire.model, "messages": len(wire.messages)}},
        )
        timeout = getattr(self._settings, "http_timeout", 30.0)
        try:
            async with httpx.AsyncClient(timeout=timeout, trust_env=False) as client:
                resp = await client.post(
                    self._deployment.url,
                    json=payload,
                    headers=self._headers(),
                )
        except (httpx.RequestError, httpx.InvalidURL) as e:
            # 网络错误：DNS 失败、连接被拒绝、超时等
            raise TransportError(code="NETWORK_ERROR", message=str(e) or type(e).__name__)
        if not 200 <= resp.status_code < 300:
            raise UpstreamStatusError(
                code="UPSTREAM_STATUS",
                message=describe_status(resp.status_code),
                http_status=resp.status_code,
                body=resp.text,
            )
        try:
            data = resp.json()
        except ValueError as e:
            raise MalformedResponse(
                code="MALFORMED_RESPONSE",
                message=f"invalid JSON body: {e}",
                http_status=resp.status_code,
            )
        if getattr(self._settings, "openai_api_disable_debug", False):
            return data
        if getattr(self._settings, "log_redact_content", False):
            # 脱敏模式下不落盘回复正文，只保留响应 id
            logger.info("result", extra={"extra": {"response_id": data.get("id") if isinstance(data, dict) else None}})
        else:
            logger.info("result", extra={"extra": {"response": data}})
        return data

    def _log_failure(self, err: BusinessError) -> None:
        logger.error(
            f"Error calling Azure OpenAI: {err.message}",
            extra={"extra": {
                "error_type": type(err).__name__,
                "code": err.code,
                "http_status": err.http_status,
                "provider": self.name,
                "deployment": self._deployment.deployment,
            }},
        )
