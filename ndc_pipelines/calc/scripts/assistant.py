"""
Optional text-extraction assistant backed by an OpenAI-compatible chat completions API.

The core never requires it: every method returns a plain dict on success and
None on any transport, decoding or shape problem, so callers fall back to
deterministic behaviour ("no assistance available").
"""

from __future__ import annotations

import json
import os
from typing import Any, Dict, List, Optional, Protocol, Sequence

import requests
from dotenv import load_dotenv

DEFAULT_ENDPOINT = "https://api.openai.com/v1/chat/completions"
DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_TIMEOUT = 20


class TextAssistant(Protocol):
    """Narrow interface the core calls out through."""

    def extract_sig(self, sig: str) -> Optional[Dict[str, Any]]:
        ...

    def extract_prescription(self, drug: str, sig: Optional[str], days: Optional[float]) -> Optional[Dict[str, Any]]:
        ...

    def pick_candidate(self, parsed: Dict[str, Any], candidates: Sequence[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        ...


SIG_SYSTEM_PROMPT = (
    "Parse prescription SIG strings. Respond ONLY with JSON: "
    '{"dose": number, "unit": string, "frequencyPerDay": number}. '
    "Normalize unit to tablet, capsule, ml, drop, puff, or unit."
)

PRESCRIPTION_PROMPT = """
You are assisting with matching prescription free text to FDA NDC data.

Extract key attributes from the provided text and respond strictly in JSON with the schema:
{{
  "generic_name": string | null,
  "brand_name": string | null,
  "strength_tokens": string[],
  "dosage_form": string | null,
  "route": string | null,
  "additional_keywords": string[]
}}

Use lower-case tokens. Return arrays even if empty.

Prescription text:
Drug field: "{drug}"
SIG: "{sig}"
Days supply: "{days}"
"""

SELECTION_PROMPT = """
You are selecting the best FDA NDC product based on prescription details.

Prescription summary:
{parsed}

Candidate products:
{candidates}

Return JSON matching:
{{
  "product_ndc": string | null,
  "confidence": number | null,
  "rationale": string
}}

If none are suitable, set product_ndc to null and explain.
"""


def extract_message_text(content: Any) -> str:
    """Flatten a chat message content (string or list of text parts) into text."""
    if not content:
        return ""
    if isinstance(content, str):
        return content.strip()
    parts: List[str] = []
    for part in content:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type") == "text" and part.get("text"):
            parts.append(str(part["text"]))
    return "".join(parts).strip()


class ChatCompletionsAssistant:
    """TextAssistant over a chat completions endpoint using requests."""

    def __init__(
        self,
        api_key: str,
        endpoint: str = DEFAULT_ENDPOINT,
        model: str = DEFAULT_MODEL,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
        verbose: bool = False,
    ):
        self.api_key = api_key
        self.endpoint = endpoint
        self.model = model
        self.timeout = timeout
        self.session = session or requests.Session()
        self.verbose = verbose
        self.last_model: Optional[str] = None

    def _log(self, msg: str) -> None:
        if self.verbose:
            print(f"[ChatCompletionsAssistant] {msg}")

    def _complete(
        self,
        messages: List[Dict[str, str]],
        temperature: float,
        json_mode: bool = False,
    ) -> Optional[Dict[str, Any]]:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }
        payload: Dict[str, Any] = {
            "model": self.model,
            "temperature": temperature,
            "messages": messages,
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        try:
            response = self.session.post(self.endpoint, json=payload, headers=headers, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
            content = data["choices"][0]["message"]["content"]
            self.last_model = data.get("model", self.model)
            parsed = json.loads(extract_message_text(content))
        except (requests.exceptions.RequestException, ValueError, KeyError, IndexError, TypeError) as exc:
            self._log(f"completion failed: {exc}")
            return None

        if not isinstance(parsed, dict):
            self._log(f"completion was not a JSON object: {parsed!r}")
            return None
        return parsed

    def extract_sig(self, sig: str) -> Optional[Dict[str, Any]]:
        return self._complete(
            [
                {"role": "system", "content": SIG_SYSTEM_PROMPT},
                {"role": "user", "content": f'SIG: "{sig}"'},
            ],
            temperature=0,
        )

    def extract_prescription(self, drug: str, sig: Optional[str], days: Optional[float]) -> Optional[Dict[str, Any]]:
        prompt = PRESCRIPTION_PROMPT.format(drug=drug, sig=sig or "", days="" if days is None else days)
        return self._complete(
            [
                {"role": "system", "content": "You extract structured data from prescriptions."},
                {"role": "user", "content": prompt},
            ],
            temperature=0.2,
            json_mode=True,
        )

    def pick_candidate(self, parsed: Dict[str, Any], candidates: Sequence[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        prompt = SELECTION_PROMPT.format(
            parsed=json.dumps(parsed, indent=2, default=list),
            candidates=json.dumps(list(candidates), indent=2, default=list),
        )
        result = self._complete(
            [
                {"role": "system", "content": "You select the most appropriate FDA NDC product."},
                {"role": "user", "content": prompt},
            ],
            temperature=0.1,
            json_mode=True,
        )
        if result is not None:
            result.setdefault("model", self.last_model)
        return result


def assistant_from_env(verbose: bool = False) -> Optional[ChatCompletionsAssistant]:
    """Build an assistant from OPENAI_API_KEY (and optional overrides); None when no key is set."""
    load_dotenv()
    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        return None
    return ChatCompletionsAssistant(
        api_key=api_key,
        endpoint=os.getenv("NDC_ASSIST_ENDPOINT", DEFAULT_ENDPOINT),
        model=os.getenv("NDC_ASSIST_MODEL", DEFAULT_MODEL),
        verbose=verbose,
    )


__all__ = [
    "ChatCompletionsAssistant",
    "TextAssistant",
    "assistant_from_env",
    "extract_message_text",
]
