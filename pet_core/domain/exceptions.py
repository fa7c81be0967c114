"""统一业务异常模型。

所有跨模块抛出的业务级错误都应该继承自 BusinessError，
由 RelayEngine 统一捕获并转换为一条 error 事件发给 UI。
"""


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "MISSING_API_KEY"）。
        message: 用户可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 trace_id、provider 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class ConfigError(BusinessError):
    """配置缺失或无效（例如没有凭证），此时不会发起任何网络请求。"""


class TransportError(BusinessError):
    """传输层错误的基类：连接失败、非 2xx 响应、响应体无法解析等。"""


class NetworkError(TransportError):
    """网络层错误，例如连接失败、连接被重置等。"""


class ApiError(TransportError):
    """第三方 API 返回非 2xx/429 错误，或顶层响应格式不正确时抛出。"""


class RateLimitError(TransportError):
    """Provider 限流错误。"""


class RelayTimeoutError(BusinessError):
    """单次对话超过截止时间，或被主动取消。"""


class DecodeSkip(BusinessError):
    """单条 SSE 行无法解析。只在解码器内部使用，不会向上传播。"""
