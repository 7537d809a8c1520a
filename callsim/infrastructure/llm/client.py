"""
Vertex AI REST client for multi-turn chat completions.
"""
import json
import logging
import time
from typing import Optional, Dict, Any, List, Sequence

import requests
import google.auth
import google.auth.exceptions
import google.auth.transport.requests
from google.oauth2 import service_account

from ...config import (
    VERTEX_LOCATION, MODEL_NAME, LLM_TIMEOUT, MAX_OUTPUT_TOKENS,
    LLM_MAX_RETRIES, LLM_RETRY_BACKOFF
)
from ...errors import ProviderError

logger = logging.getLogger("llm_client")

# Speaker-perspective labels accepted by complete()
SELF = "self"
OTHER = "other"

_VERTEX_ROLES = {SELF: "model", OTHER: "user"}
_RETRYABLE_STATUS = {429, 500, 502, 503, 504}


class VertexChatClient:
    """REST-based chat client for Vertex AI Gemini models."""

    provider = "vertex"

    def __init__(self,
                 project: str,
                 location: str = VERTEX_LOCATION,
                 model: str = MODEL_NAME,
                 credentials_json: Optional[str] = None,
                 timeout: int = LLM_TIMEOUT,
                 max_retries: int = LLM_MAX_RETRIES,
                 retry_backoff: float = LLM_RETRY_BACKOFF):
        self.project = project
        self.location = location
        self.model = model
        self.credentials_json = credentials_json
        self.base_url = f"https://{self.location}-aiplatform.googleapis.com/v1"
        self.model_resource = f"projects/{self.project}/locations/{self.location}/publishers/google/models/{self.model}"
        self._token = None
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_backoff = retry_backoff

    def _refresh_token(self):
        """Refresh the OAuth token for API calls."""
        try:
            if self.credentials_json:
                creds = service_account.Credentials.from_service_account_file(
                    self.credentials_json,
                    scopes=["https://www.googleapis.com/auth/cloud-platform"],
                )
            else:
                creds, _ = google.auth.default(scopes=["https://www.googleapis.com/auth/cloud-platform"])

            auth_req = google.auth.transport.requests.Request()
            creds.refresh(auth_req)
        except (google.auth.exceptions.GoogleAuthError, OSError) as e:
            raise ProviderError(self.provider, f"authentication failed: {e}") from e
        self._token = creds.token

    def _ensure_token(self):
        """Ensure we have a valid token, refreshing if needed."""
        if not self._token:
            self._refresh_token()

    @staticmethod
    def build_contents(turns: Sequence[Dict[str, str]]) -> List[Dict[str, Any]]:
        """Map self/other turns onto Vertex model/user contents."""
        contents = [
            {"role": _VERTEX_ROLES[turn["role"]], "parts": [{"text": turn["content"]}]}
            for turn in turns
        ]
        # Gemini rejects an empty conversation; the opening line answers a pickup
        if not contents:
            contents = [{"role": "user", "parts": [{"text": "Hello?"}]}]
        return contents

    def complete(self,
                 system_instruction: str,
                 turns: Sequence[Dict[str, str]],
                 temperature: float = 0.7,
                 max_output_tokens: int = MAX_OUTPUT_TOKENS) -> str:
        """
        Produce the next utterance for the speaker whose turns are labeled "self".

        Args:
            system_instruction: Role-specific behavioral instructions
            turns: Ordered history of {"role": "self"|"other", "content": str}
            temperature: Sampling temperature
            max_output_tokens: Output token cap

        Returns:
            Generated utterance text

        Raises:
            ProviderError: On network, auth, rate-limit or payload failures
        """
        body: Dict[str, Any] = {
            "systemInstruction": {"parts": [{"text": system_instruction}]},
            "contents": self.build_contents(turns),
            "generationConfig": {
                "temperature": float(temperature),
                "maxOutputTokens": int(max_output_tokens),
            },
        }
        resp_json = self._post_with_retry(body)
        text = self._parse_response_text(resp_json)
        logger.debug("LLM output: %r", text)
        return text.strip()

    def _post_with_retry(self, body: Dict[str, Any]) -> Dict[str, Any]:
        """POST generateContent with bounded exponential backoff on transient failures."""
        url = f"{self.base_url}/{self.model_resource}:generateContent"
        attempt = 0

        while True:
            self._ensure_token()
            headers = {
                "Authorization": f"Bearer {self._token}",
                "Content-Type": "application/json",
            }

            try:
                resp = requests.post(url, headers=headers, json=body, timeout=self.timeout)
            except requests.RequestException as e:
                error = ProviderError(self.provider, f"request failed: {e}")
                retryable = True
            else:
                if resp.status_code < 400:
                    try:
                        return resp.json()
                    except ValueError as e:
                        raise ProviderError(self.provider, f"invalid JSON response: {e}") from e
                if resp.status_code == 401:
                    # Token expired; fetch a fresh one on the next attempt
                    self._token = None
                error = ProviderError(self.provider, resp.text, status_code=resp.status_code)
                retryable = resp.status_code in _RETRYABLE_STATUS or resp.status_code == 401

            if not retryable or attempt >= self.max_retries:
                logger.error("LLM request failed after %d attempt(s): %s", attempt + 1, error)
                raise error

            delay = self.retry_backoff * (2 ** attempt)
            logger.warning("LLM request failed (%s), retrying in %.1fs", error, delay)
            time.sleep(delay)
            attempt += 1

    def _parse_response_text(self, resp_json: Dict[str, Any]) -> str:
        """
        Parse response JSON to extract text content.
        Tries Vertex schema first, then falls back to alternatives.
        """
        cands = resp_json.get("candidates", [])
        if cands:
            content = cands[0].get("content", {})
            parts = content.get("parts", [])
            texts = [p["text"] for p in parts if isinstance(p, dict) and isinstance(p.get("text"), str)]
            if texts:
                return "".join(texts)
            if isinstance(content.get("text"), str):
                return content["text"]

        if isinstance(resp_json.get("text"), str):
            return resp_json["text"]

        raise ProviderError(
            self.provider,
            f"no text in response: {json.dumps(resp_json, separators=(',', ':'))[:500]}"
        )
