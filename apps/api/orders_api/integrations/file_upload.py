import hashlib
import time
from dataclasses import dataclass
from typing import Callable, Protocol

import httpx

from orders_api.config import settings
from orders_api.integrations.errors import (
    IntegrationBadGatewayError,
    IntegrationRejectedError,
    IntegrationTimeoutError,
    IntegrationUnavailableError,
)

SERVICE_NAME = "file_upload"


@dataclass(frozen=True)
class UploadResult:
    public_id: str
    secure_url: str


class FileUploadProtocol(Protocol):
    def upload(self, file_data: str, public_id: str | None = None) -> UploadResult: ...


def sign_upload_params(params: dict[str, str], api_secret: str) -> str:
    to_sign = "&".join(f"{key}={params[key]}" for key in sorted(params) if params[key] != "")
    return hashlib.sha1(f"{to_sign}{api_secret}".encode()).hexdigest()


class CloudinaryUploadClient:
    """Signed uploads of base64 data URIs or remote URLs to a Cloudinary-style API."""

    def __init__(
        self,
        base_url: str,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        timeout_s: float,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.cloud_name = cloud_name
        self.api_key = api_key
        self.api_secret = api_secret
        self.timeout_s = timeout_s
        self._clock = clock

    def upload(self, file_data: str, public_id: str | None = None) -> UploadResult:
        if not (self.cloud_name and self.api_key and self.api_secret):
            raise IntegrationUnavailableError(SERVICE_NAME, "Upload service is not configured")

        params = {"timestamp": str(int(self._clock()))}
        if public_id:
            params["public_id"] = public_id
        form = {
            **params,
            "file": file_data,
            "api_key": self.api_key,
            "signature": sign_upload_params(params, self.api_secret),
        }

        try:
            with httpx.Client(timeout=self.timeout_s) as client:
                response = client.post(f"{self.base_url}/{self.cloud_name}/auto/upload", data=form)
        except httpx.TimeoutException as err:
            raise IntegrationTimeoutError(SERVICE_NAME) from err
        except httpx.TransportError as err:
            raise IntegrationUnavailableError(SERVICE_NAME, str(err)) from err

        if response.status_code >= 500:
            raise IntegrationUnavailableError(
                SERVICE_NAME, "Upload service returned 5xx", response.status_code
            )
        if response.status_code >= 400:
            raise IntegrationRejectedError(
                SERVICE_NAME,
                f"Upload service returned {response.status_code}",
                response.status_code,
            )

        try:
            body = response.json()
        except ValueError as err:
            raise IntegrationBadGatewayError(
                SERVICE_NAME, "Upload service returned a non-JSON body"
            ) from err
        if not isinstance(body, dict) or not body.get("public_id") or not body.get("secure_url"):
            raise IntegrationBadGatewayError(SERVICE_NAME, "Upload response missing public_id")
        return UploadResult(public_id=str(body["public_id"]), secure_url=str(body["secure_url"]))


def get_file_uploader() -> FileUploadProtocol:
    return CloudinaryUploadClient(
        base_url=settings.upload_base_url,
        cloud_name=settings.upload_cloud_name,
        api_key=settings.upload_api_key,
        api_secret=settings.upload_api_secret,
        timeout_s=settings.upload_timeout_s,
    )
