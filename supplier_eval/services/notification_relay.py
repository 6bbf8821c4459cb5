"""Notification relay - best-effort POST of saved evaluations.

Called only after the store write has committed. Delivery runs on a
single background worker with a bounded timeout; failures are logged and
dropped. Nothing here can change the outcome of the save that triggered it.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional, Union

import httpx

from supplier_eval.config import get_relay_timeout, get_relay_url
from supplier_eval.errors import RelayError
from supplier_eval.schemas.payload import EvaluationPayload, RelayEnvelope

logger = logging.getLogger(__name__)


class NotificationRelay:
    """Forwards evaluation envelopes to the relay endpoint."""

    def __init__(
        self,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.Client] = None,
    ):
        """
        Args:
            url: Relay endpoint (defaults to SUPPLIER_EVAL_RELAY_URL; None disables the relay)
            timeout: Request timeout in seconds (defaults to SUPPLIER_EVAL_RELAY_TIMEOUT)
            client: Optional preconfigured httpx client (tests inject a MockTransport here)
        """
        self.url = url if url is not None else get_relay_url()
        self.timeout = timeout if timeout is not None else get_relay_timeout()
        self._client = client
        self._executor: Optional[ThreadPoolExecutor] = None

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    def _get_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self.timeout)
        return self._client

    def build_envelope(
        self, payload: EvaluationPayload, evaluation_id: Optional[Union[int, str]] = None
    ) -> RelayEnvelope:
        return RelayEnvelope(evaluation=payload, evaluation_id=evaluation_id)

    def send(self, payload: EvaluationPayload, evaluation_id: Optional[Union[int, str]] = None) -> dict:
        """POST the envelope synchronously.

        Raises:
            RelayError: transport failure, non-2xx status, or a body reporting success=false
        """
        if not self.enabled:
            raise RelayError("Notification relay URL is not configured")

        envelope = self.build_envelope(payload, evaluation_id)
        try:
            response = self._get_client().post(
                self.url,
                json=envelope.model_dump(mode="json"),
                timeout=self.timeout,
            )
        except httpx.HTTPError as e:
            raise RelayError(f"Relay request failed: {e}") from e

        if not response.is_success:
            raise RelayError(f"Relay returned HTTP {response.status_code}")

        body: dict = {}
        if "application/json" in response.headers.get("content-type", ""):
            try:
                parsed = response.json()
            except ValueError as e:
                raise RelayError(f"Relay returned invalid JSON: {e}") from e
            body = parsed if isinstance(parsed, dict) else {"data": parsed}
        if body.get("success") is False:
            raise RelayError(body.get("error") or "Relay reported failure")

        logger.info(f"Evaluation relayed [evaluation_id={evaluation_id} status={response.status_code}]")
        return body

    def _deliver(self, payload: EvaluationPayload, evaluation_id: Optional[Union[int, str]]) -> bool:
        try:
            self.send(payload, evaluation_id)
            return True
        except RelayError as e:
            logger.warning(f"Relay delivery failed, evaluation already saved [evaluation_id={evaluation_id} error={e}]")
            return False
        except Exception as e:
            logger.error(f"Unexpected relay error [evaluation_id={evaluation_id} error={e}]", exc_info=True)
            return False

    def dispatch(
        self, payload: EvaluationPayload, evaluation_id: Optional[Union[int, str]] = None
    ) -> Optional[Future]:
        """Queue delivery on the background worker and return immediately.

        The returned future resolves to True/False and never raises.
        """
        if not self.enabled:
            logger.debug(f"Relay disabled, skipping notification [evaluation_id={evaluation_id}]")
            return None
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="relay")
        return self._executor.submit(self._deliver, payload, evaluation_id)

    def close(self, wait: bool = True):
        """Stop the worker and close the HTTP client."""
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
            self._executor = None
        if self._client is not None:
            self._client.close()
            self._client = None
