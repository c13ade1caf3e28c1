from __future__ import annotations

from typing import Any, TypeVar
from urllib.parse import urljoin

import requests
import structlog
from pydantic import BaseModel
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

T = TypeVar("T", bound=BaseModel)


class BaseAPIClient:
    """
    Utilitário HTTP simples (GET) com:
      • retry com backoff
      • timeout curto configurável
      • parse + validação Pydantic
    """

    def __init__(
        self,
        *,
        base_url: str,
        default_headers: dict[str, str] | None = None,
        timeout: float = 3.0,
        retries: int = 1,
    ) -> None:
        self.log = structlog.get_logger(__name__).bind(component=type(self).__name__)
        self.base_url = base_url.rstrip("/") + "/"
        self.timeout = timeout

        self.session = requests.Session()
        if default_headers:
            self.session.headers.update(default_headers)

        retry_cfg = Retry(
            total=retries,
            backoff_factor=0.3,
            status_forcelist=[429, 500, 502, 503, 504],
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry_cfg)
        for scheme in ("https://", "http://"):
            self.session.mount(scheme, adapter)

    def _get(self, path: str, *, params: dict[str, Any], response_model: type[T]) -> T:
        """
        Executa GET e retorna objeto Pydantic já validado.
        `path` já deve vir com segmentos escapados.
        """
        url = urljoin(self.base_url, path.lstrip("/"))
        # nunca logar o token de acesso
        log = self.log.bind(method="GET", url=url, model=response_model.__name__)
        log.debug("api_client.request")

        try:
            resp = self.session.get(url, params=params, timeout=self.timeout)
            log.debug("api_client.response", status_code=resp.status_code)
            resp.raise_for_status()
            result = response_model.model_validate(resp.json())
            return result

        except Exception as exc:  # noqa: BLE001
            log.warning("api_client.request_failed", error=str(exc))
            raise
