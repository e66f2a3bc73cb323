"""统一业务异常模型。

所有跨模块抛出的错误都继承自 BusinessError，便于调用方统一捕获：

- SchemaError: 由结构类型推导 JSON Schema 时失败（类型未知、不是 dataclass 等）。
- ToolError: 工具注册、查找、参数构造、执行失败，或执行结果无法编码为 JSON；原始异常通过 ``__cause__`` 保留。
- AgentError: Agent 循环级别的失败（无响应、工具参数 JSON 非法、未知 finish_reason、
  超过最大轮数、最终输出解析失败）。

Provider 层的网络/接口错误同样继承 BusinessError，由调用方决定是否重试。
"""


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "TOOL_NOT_FOUND"）。
        message: 用户可读错误信息。
        http_status: 映射到 HTTP 时可用的状态码，默认 400。
        extra: 其他补充字段（例如 tool_name、finish_reason 等）。
    """

    def __init__(self, code: str, message: str, http_status: int = 400, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class SchemaError(BusinessError):
    """结构类型无法推导 JSON Schema。"""


class ToolError(BusinessError):
    """工具注册、查找或执行失败。"""


class AgentError(BusinessError):
    """Agent 循环失败（无响应、参数非法、finish_reason 异常、超过轮数、输出解析失败）。"""


class NetworkError(BusinessError):
    """网络层错误，例如连接失败、超时等。"""


class ApiError(BusinessError):
    """第三方 API 返回非 2xx/429 错误时抛出。"""


class RateLimitError(BusinessError):
    """Provider 限流错误，由上层负责重试/退避策略。"""


class ValidationError(BusinessError):
    """参数或配置校验失败。"""
