# goalfund/clients/intent_parser.py
import json
import logging
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

import httpx
from pydantic import ValidationError as PydanticValidationError

from goalfund.core.config import settings
from goalfund.core.exceptions import IntentParserUnavailable
from goalfund.schemas.intent import GoalCreationIntent, IncomeTransactionIntent, ParsedIntent

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You extract budgeting intents for a goal funding assistant. "
    "Translate the user's message into strictly JSON, no extra commentary.\n\n"
    "Supported intents:\n"
    "- income: {type: \"income\", amount: number, date?: YYYY-MM-DD, description?: str, "
    "override?: {goal_title: str, amount: number}}\n"
    "- goal: {type: \"goal\", title: str, target_amount?: number, target_date?: YYYY-MM-DD}\n"
    "Rules: use override only when the user names a goal and an amount for it. "
    "Leave target_amount out if the user did not give one; never guess amounts. "
    "Resolve relative dates using the provided current date."
)


class IntentParserClient:
    """
    Turns chat text into intent records through an OpenAI-compatible
    chat completions endpoint.

    Only parsing happens here; nothing is written. Timeouts and upstream
    failures raise IntentParserUnavailable so the caller can surface them
    before touching the database.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url or settings.INTENT_PARSER_URL
        self.api_key = api_key if api_key is not None else settings.INTENT_PARSER_API_KEY
        self.model = model or settings.INTENT_PARSER_MODEL
        self.timeout = timeout if timeout is not None else settings.INTENT_PARSER_TIMEOUT
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "X-Title": settings.APP_NAME,
        }
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def _complete(self, text: str, today: date) -> str:
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": (
                    f"Message: {text}\n"
                    f"Current date: {today.isoformat()}\n"
                    "Return JSON with shape: {\"intents\":[{...}]}"
                )},
            ],
            "temperature": 0.0,
            "max_tokens": 512,
            "response_format": {"type": "json_object"},
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(self.url, headers=self._headers(), json=payload)
        except httpx.TimeoutException as e:
            logger.warning(f"Intent parser timed out after {self.timeout}s")
            raise IntentParserUnavailable("Intent parser timed out", details={"timeout": self.timeout}) from e
        except httpx.HTTPError as e:
            logger.error(f"Intent parser request failed: {e}")
            raise IntentParserUnavailable(f"Intent parser request failed: {e}") from e

        if resp.status_code != 200:
            logger.error(f"Intent parser answered {resp.status_code}: {resp.text[:200]}")
            raise IntentParserUnavailable(
                "Intent parser returned an error",
                details={"upstream_status": resp.status_code},
            )
        try:
            return resp.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise IntentParserUnavailable("Intent parser returned an unexpected payload") from e

    @staticmethod
    def parse_content(content: str) -> Tuple[List[ParsedIntent], List[Dict[str, Any]]]:
        """Validate the model's JSON; returns (intents, raw records). Invalid records are skipped."""
        try:
            data = json.loads(content) or {}
        except (TypeError, ValueError) as e:
            raise IntentParserUnavailable("Intent parser returned invalid JSON") from e

        raw = data.get("intents", []) if isinstance(data, dict) else []
        intents: List[ParsedIntent] = []
        kept: List[Dict[str, Any]] = []
        for record in raw:
            if not isinstance(record, dict):
                continue
            model = {"income": IncomeTransactionIntent, "goal": GoalCreationIntent}.get(record.get("type"))
            if model is None:
                logger.debug(f"Skipping unsupported intent {record.get('type')!r}")
                continue
            try:
                intents.append(model(**record))
                kept.append(record)
            except PydanticValidationError as e:
                logger.debug(f"Skipping invalid {record.get('type')} intent: {e.error_count()} errors")
        return intents, kept

    async def parse(self, text: str, today: Optional[date] = None) -> Tuple[List[ParsedIntent], List[Dict[str, Any]]]:
        content = await self._complete(text, today or date.today())
        intents, raw = self.parse_content(content)
        logger.info(f"Parsed {len(intents)} intents from command")
        return intents, raw


def get_intent_parser() -> IntentParserClient:
    return IntentParserClient()
