"""统一业务异常模型。

所有跨模块抛出的业务级错误都应该继承自 BusinessError，
便于在编排层统一捕获、分类并记录日志。
"""


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "NETWORK_ERROR"）。
        message: 用户可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如响应正文、deployment 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class TransportError(BusinessError):
    """网络层错误，例如 DNS 失败、连接被拒绝、超时等。"""


class UpstreamStatusError(BusinessError):
    """上游 API 返回非 2xx 状态码时抛出。"""


class MalformedResponse(BusinessError):
    """2xx 响应但正文无法解析或缺少必需字段（choices / message / id）。"""


class ValidationError(BusinessError):
    """参数或配置校验失败。"""
