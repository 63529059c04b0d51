"""Azure 部署配置与状态码映射。

本模块集中维护两类静态信息：

- AzureDeployment：由配置解析出的调用端点、部署名与模型 ID，
  在客户端构造时解析一次，之后不再变化。
- ERROR_CODE_MESSAGES：常见 HTTP 状态码到中英双语提示的映射，
  只用于日志，不影响控制流。
"""

from dataclasses import dataclass
from typing import Dict, Mapping, Optional


DEFAULT_API_VERSION = "2024-05-01-preview"
DEFAULT_DEPLOYMENT = "gpt-4o"


ERROR_CODE_MESSAGES: Mapping[int, str] = {
    401: "[OpenAI] 提供错误的API密钥 | Incorrect API key provided",
    403: "[OpenAI] 服务器拒绝访问，请稍后再试 | Server refused to access, please try again later",
    502: "[OpenAI] 错误的网关 | Bad Gateway",
    503: "[OpenAI] 服务器繁忙，请稍后再试 | Server is busy, please try again later",
    504: "[OpenAI] 网关超时 | Gateway Time-out",
    500: "[OpenAI] 服务器繁忙，请稍后再试 | Internal Server Error",
}


def describe_status(status_code: int) -> str:
    """返回状态码对应的提示文本，未收录的状态码使用通用提示。"""

    message = ERROR_CODE_MESSAGES.get(status_code)
    if message:
        return message
    return f"[OpenAI] 请求失败，状态码 {status_code} | Request failed with status {status_code}"


@dataclass
class AzureDeployment:
    """一次解析得到的 Azure OpenAI 部署信息。"""

    url: str
    deployment: str
    model: str
    api_version: str

    def redacted(self, api_key: Optional[str]) -> Dict[str, str]:
        """用于日志输出的配置快照，密钥只保留末 4 位。"""

        tail = (api_key or "")[-4:]
        return {
            "url": self.url,
            "deployment": self.deployment,
            "model": self.model,
            "api_version": self.api_version,
            "api_key": f"***{tail}" if tail else "",
        }


def build_chat_url(endpoint: str, deployment: str, api_version: str) -> str:
    """按 Azure 规则拼接 chat/completions 地址。"""

    base = endpoint.rstrip("/")
    return f"{base}/openai/deployments/{deployment}/chat/completions?api-version={api_version}"


def resolve_deployment(cfg) -> Optional[AzureDeployment]:
    """从配置对象解析部署信息。

    - az_url 显式给出完整地址时直接使用；
    - 否则由 azure_endpoint + azure_deployment + azure_api_version 拼接；
    - 两者都缺失时返回 None，由调用方决定如何报错。

    模型 ID 优先取 openai_api_model，其次为部署名。
    """

    deployment = getattr(cfg, "azure_deployment", None) or DEFAULT_DEPLOYMENT
    api_version = getattr(cfg, "azure_api_version", None) or DEFAULT_API_VERSION
    model = getattr(cfg, "openai_api_model", None) or deployment

    url = getattr(cfg, "az_url", None)
    if not url:
        endpoint = getattr(cfg, "azure_endpoint", None)
        if not endpoint:
            return None
        url = build_chat_url(endpoint, deployment, api_version)
    return AzureDeployment(url=url, deployment=deployment, model=model, api_version=api_version)
