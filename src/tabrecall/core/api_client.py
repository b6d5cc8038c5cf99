"""HTTP transport for language-model and embedding endpoints."""

import json
import logging
import re
import time
from typing import Any, Dict, Optional

import requests

from tabrecall.core.exceptions import UpstreamError

logger = logging.getLogger(__name__)
THINK_TAG_PATTERN = re.compile(r"<think>.*?</think>", re.DOTALL)


def strip_think_tags(text: str) -> str:
    """Remove <think>...</think> blocks from LLM output."""
    if not text:
        return ""
    return THINK_TAG_PATTERN.sub("", text).strip()


def _error_detail(response: Optional[requests.Response]) -> str:
    """Pull a human-readable message out of an error response body."""
    if response is None:
        return ""
    try:
        body = response.json()
    except ValueError:
        return (response.text or "")[:200]
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str):
            return error
    return json.dumps(body)[:200]


def _retry_after_seconds(response: requests.Response, fallback: float) -> float:
    retry_after = response.headers.get("Retry-After")
    if not retry_after:
        return fallback
    try:
        # Handle potential floating point strings (e.g. "5.0")
        return int(float(retry_after))
    except ValueError:
        return fallback


def post_json(
    url: str,
    payload: Dict[str, Any],
    headers: Dict[str, str],
    timeout: Optional[float] = None,
    label: str = "llm",
) -> Dict[str, Any]:
    """POST a JSON payload and return the decoded JSON body.

    Rate limits (429) and connection errors are retried with exponential
    backoff. Any other failure is raised as ``UpstreamError``.
    """
    from tabrecall.config import (
        INITIAL_BACKOFF,
        MAX_BACKOFF,
        MAX_RETRIES,
        REQUEST_TIMEOUT,
    )

    effective_timeout = timeout or REQUEST_TIMEOUT
    current_backoff = INITIAL_BACKOFF
    attempts = max(1, MAX_RETRIES)

    logger.info(f"Sending {label} request to {url}")
    for attempt in range(attempts):
        started = time.perf_counter()
        try:
            resp = requests.post(
                url, json=payload, headers=headers, timeout=effective_timeout
            )
            resp.raise_for_status()
            body = resp.json()
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.debug(
                f"{label} response from {url} (attempt {attempt + 1}, {elapsed_ms:.0f}ms)"
            )
            return body
        except requests.exceptions.HTTPError as e:
            response = e.response
            status_code = response.status_code if response is not None else None
            if status_code == 429 and attempt < attempts - 1:
                wait_time = _retry_after_seconds(response, current_backoff)
                current_backoff = min(current_backoff * 2, MAX_BACKOFF)
                logger.info(
                    f"Rate limit exceeded (429). Retrying in {wait_time} seconds..."
                )
                time.sleep(wait_time)
                continue
            detail = _error_detail(response)
            raise UpstreamError(
                f"{label} request failed with status {status_code}: {detail}".rstrip(": "),
                status_code=status_code,
            ) from e
        except ValueError as e:
            raise UpstreamError(f"{label} response was not valid JSON") from e
        except requests.exceptions.RequestException as e:
            if attempt < attempts - 1:
                logger.info(
                    f"Request error: {e}. Retrying in {current_backoff} seconds..."
                )
                time.sleep(current_backoff)
                current_backoff = min(current_backoff * 2, MAX_BACKOFF)
                continue
            raise UpstreamError(f"{label} request failed: {e}") from e
    raise UpstreamError(f"{label} request failed: max retries exceeded")
