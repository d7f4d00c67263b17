from __future__ import annotations

import json
import logging
import time
import urllib.error
import urllib.parse
import urllib.request
import uuid
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


class PaymentError(RuntimeError):
    pass


class PaymentConfigError(PaymentError):
    pass


class PaymentProviderError(PaymentError):
    pass


class PaymentRateLimited(PaymentProviderError):
    pass


@dataclass(frozen=True)
class MercadoPagoClient:
    access_token: str
    base_url: str = "https://api.mercadopago.com"
    timeout_seconds: int = 5

    def _open(self, req: urllib.request.Request):
        return urllib.request.urlopen(req, timeout=self.timeout_seconds)

    def request_json(
        self,
        method: str,
        path: str,
        *,
        body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        retries: int = 2,
    ) -> dict[str, Any]:
        url = self.base_url.rstrip("/") + path
        if params:
            url += "?" + urllib.parse.urlencode({k: v for k, v in params.items() if v is not None})
        data = json.dumps(body).encode("utf-8") if body is not None else None
        # one key per logical request so provider-side retries are deduplicated
        idempotency_key = uuid.uuid4().hex

        last_err: Exception | None = None
        raw = b""
        for attempt in range(retries + 1):
            req = urllib.request.Request(url, data=data, method=method)
            req.add_header("Authorization", f"Bearer {self.access_token}")
            req.add_header("Accept", "application/json")
            if data is not None:
                req.add_header("Content-Type", "application/json")
                req.add_header("X-Idempotency-Key", idempotency_key)
            try:
                with self._open(req) as resp:
                    raw = resp.read()
                break
            except urllib.error.HTTPError as e:
                if e.code == 429:
                    logger.warning("Mercado Pago rate limited (%s %s), attempt %s", method, path, attempt + 1)
                    time.sleep(min(2 * (attempt + 1), 10))
                    last_err = PaymentRateLimited("Rate limited (429)")
                    continue
                try:
                    err_body = e.read().decode("utf-8", errors="ignore")
                except Exception:
                    err_body = ""
                raise PaymentProviderError(f"HTTP {e.code} from Mercado Pago: {err_body[:300]}") from e
            except (urllib.error.URLError, TimeoutError, ConnectionError) as e:
                logger.warning("Mercado Pago request failed (%s %s), attempt %s: %s", method, path, attempt + 1, e)
                last_err = e
                time.sleep(min(1 * (attempt + 1), 5))
                continue
        else:
            raise PaymentProviderError(f"Mercado Pago request failed after retries: {last_err}")

        try:
            parsed = json.loads(raw.decode("utf-8"))
        except ValueError as e:
            raise PaymentProviderError(f"Invalid JSON from Mercado Pago ({path})") from e
        if not isinstance(parsed, dict):
            raise PaymentProviderError(f"Unexpected response shape from Mercado Pago ({path})")
        return parsed

    def create_preference(self, body: dict[str, Any]) -> dict[str, Any]:
        """Create a Checkout Pro preference; the response carries `init_point`."""
        return self.request_json("POST", "/checkout/preferences", body=body)

    def get_payment(self, payment_id: str) -> dict[str, Any]:
        return self.request_json("GET", f"/v1/payments/{urllib.parse.quote(str(payment_id))}")
