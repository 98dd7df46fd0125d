"""
Cloud environments and the endpoints that belong to each of them.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Union

from .errors import ConfigError

DOWNLOAD_CONFIRMATION_URL = "https://www.microsoft.com/en-us/download/confirmation.aspx?id={download_id}"


class CloudEnvironment(str, Enum):
    """Azure cloud a service tag document is published for."""

    PUBLIC = "Public"
    USGOV = "USGov"
    CHINA = "China"
    GERMANY = "Germany"

    @classmethod
    def parse(cls, value: Union[str, "CloudEnvironment"]) -> "CloudEnvironment":
        """
        Resolve a cloud name case-insensitively.

        Args:
            value: Cloud name such as "public" or "USGov"

        Returns:
            Matching CloudEnvironment

        Raises:
            ConfigError: If the name is not a known cloud
        """
        if isinstance(value, cls):
            return value
        wanted = str(value).strip().lower()
        for member in cls:
            if member.value.lower() == wanted:
                return member
        choices = ", ".join(member.value for member in cls)
        raise ConfigError(f"Unknown cloud environment: {value!r} (expected one of {choices})")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class CloudEndpoints:
    download_id: int
    document_cloud: str
    authority_host: str
    resource_manager: str

    @property
    def confirmation_url(self) -> str:
        return DOWNLOAD_CONFIRMATION_URL.format(download_id=self.download_id)

    @property
    def credential_scope(self) -> str:
        return f"{self.resource_manager}/.default"


CLOUD_ENDPOINTS: Dict[CloudEnvironment, CloudEndpoints] = {
    CloudEnvironment.PUBLIC: CloudEndpoints(
        download_id=56519,
        document_cloud="Public",
        authority_host="login.microsoftonline.com",
        resource_manager="https://management.azure.com",
    ),
    CloudEnvironment.USGOV: CloudEndpoints(
        download_id=57063,
        document_cloud="AzureGovernment",
        authority_host="login.microsoftonline.us",
        resource_manager="https://management.usgovcloudapi.net",
    ),
    CloudEnvironment.CHINA: CloudEndpoints(
        download_id=57062,
        document_cloud="AzureChinaCloud",
        authority_host="login.chinacloudapi.cn",
        resource_manager="https://management.chinacloudapi.cn",
    ),
    CloudEnvironment.GERMANY: CloudEndpoints(
        download_id=57064,
        document_cloud="AzureGermanCloud",
        authority_host="login.microsoftonline.de",
        resource_manager="https://management.microsoftazure.de",
    ),
}


def endpoints_for(cloud: Union[str, CloudEnvironment]) -> CloudEndpoints:
    return CLOUD_ENDPOINTS[CloudEnvironment.parse(cloud)]
