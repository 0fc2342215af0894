from __future__ import annotations

import json
import logging
import time
from typing import Any

import requests

from sugar_sim.config.settings import OracleSettings
from sugar_sim.llm.prompts import SYSTEM_PROMPT, batch_response_schema, build_batch_prompt
from sugar_sim.utils.errors import OracleAPIError, OracleSchemaError


class OracleAdapter:
    """Blocking client for an Ollama-compatible ``/api/generate`` endpoint."""

    def __init__(self, settings: OracleSettings) -> None:
        self._settings = settings
        self._logger = logging.getLogger("sugar_sim.oracle")

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _post_with_retry(self, endpoint: str, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self._settings.host}{endpoint}"
        attempts = self._settings.max_retries + 1
        last_error: OracleAPIError | None = None
        last_cause: Exception | None = None
        for attempt in range(1, attempts + 1):
            try:
                response = requests.post(
                    url,
                    json=payload,
                    timeout=self._settings.timeout_seconds,
                )
                response.raise_for_status()
            except requests.exceptions.HTTPError as exc:
                status = exc.response.status_code if exc.response is not None else None
                body = exc.response.text if exc.response is not None else None
                last_error = OracleAPIError(
                    f"Oracle returned HTTP error for {endpoint}", status, body
                )
                last_cause = exc
            except requests.exceptions.RequestException as exc:
                last_error = OracleAPIError(
                    f"Oracle request failed for {endpoint}: {exc.__class__.__name__}"
                )
                last_cause = exc
            else:
                try:
                    return response.json()
                except ValueError as exc:
                    raise OracleSchemaError(
                        "Oracle envelope is not valid JSON", raw_response=response.text
                    ) from exc
            if attempt >= attempts:
                break
            self._logger.warning(
                "Oracle request retrying endpoint=%s attempt=%d/%d error=%s",
                endpoint,
                attempt,
                attempts,
                last_cause.__class__.__name__,
            )
            time.sleep(self._settings.retry_backoff_seconds * attempt)
        assert last_error is not None
        self._logger.error(
            "Oracle request failed endpoint=%s attempts=%d", endpoint, attempts
        )
        raise last_error from last_cause

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def request_decisions(self, contexts: list[dict[str, Any]]) -> Any:
        """One batched request for every context; returns the decoded JSON answer."""
        prompt = build_batch_prompt(contexts)
        self._logger.info(
            "ORACLE request model=%s agents=%d prompt_len=%d",
            self._settings.llm_model,
            len(contexts),
            len(prompt),
        )
        self._logger.debug("ORACLE prompt:\n%s", prompt)
        t0 = time.perf_counter()
        envelope = self._post_with_retry(
            "/api/generate",
            {
                "model": self._settings.llm_model,
                "system": SYSTEM_PROMPT,
                "prompt": prompt,
                "stream": False,
                "format": batch_response_schema(),
                "options": {"temperature": self._settings.llm_temperature},
            },
        )
        text = envelope.get("response") if isinstance(envelope, dict) else None
        if not isinstance(text, str):
            raise OracleSchemaError(
                "Oracle envelope has no 'response' text", raw_response=envelope
            )
        self._logger.info(
            "ORACLE response latency=%.0fms chars=%d",
            (time.perf_counter() - t0) * 1000.0,
            len(text),
        )
        self._logger.debug("ORACLE response_text:\n%s", text)
        try:
            return json.loads(text)
        except ValueError as exc:
            raise OracleSchemaError(
                "Oracle response is not valid JSON", raw_response=text
            ) from exc
