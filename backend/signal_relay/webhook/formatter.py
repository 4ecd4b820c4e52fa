"""
PURPOSE: Turn loosely-typed webhook payloads into Telegram notification text.

Alert sources do not agree on field names (TradingView templates, custom Pine
Script strategies, third-party bridges), so every display field is resolved
through a prioritized list of candidate keys. No numeric validation is
performed: all values are opaque display strings.

A value is "present" when it is not None and its string form, stripped, is
neither empty nor the literal "N/A". Zero, False and other falsy values are
present; only the explicit blanks above fall through to the next key.

CALLED BY:
    - webhook/processor.py — WebhookIngestor.process()
"""

import json
from typing import Any, Dict, Mapping, Optional

from signal_relay.core.errors import MalformedPayload

NOT_AVAILABLE = "N/A"

# Candidate keys per display field, first present wins
TICKER_KEYS = ("ticker", "symbol")
ENTRY_KEYS = ("entry_price", "price", "close")
STOP_LOSS_KEYS = ("sl", "stop_loss")
TAKE_PROFIT_KEYS = ("tp1", "take_profit")

# A formatted message is only worth sending when one of these is present
IDENTIFYING_KEYS = ("ticker", "direction", "symbol")

# Characters with meaning in Telegram legacy Markdown
MARKDOWN_SPECIAL = "_*`["


# ════════════════════════════════════════════════════════════════
# Payload Parsing
# ════════════════════════════════════════════════════════════════


def parse_payload(raw_body: str) -> Dict[str, Any]:
    """
    PURPOSE: Decode a raw webhook body into a key-value mapping.

    Args:
        raw_body: Body text as received (JSON or arbitrary text).

    Returns:
        dict: The decoded JSON object.

    Raises:
        MalformedPayload: If the body is not JSON or is JSON but not an object.
    """
    try:
        data = json.loads(raw_body)
    except (json.JSONDecodeError, TypeError) as e:
        raise MalformedPayload(f"Body is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise MalformedPayload(f"Expected a JSON object, got {type(data).__name__}")
    return data


# ════════════════════════════════════════════════════════════════
# Field Resolution
# ════════════════════════════════════════════════════════════════


def _display(value: Any) -> Optional[str]:
    """Return the display string for a value, or None if it counts as blank."""
    if value is None:
        return None
    if isinstance(value, bool):
        text = "true" if value else "false"
    elif isinstance(value, (dict, list)):
        text = json.dumps(value, ensure_ascii=False)
    else:
        text = str(value)
    text = text.strip()
    if not text or text == NOT_AVAILABLE:
        return None
    return text


def resolve_field(payload: Mapping[str, Any], *keys: str) -> Optional[str]:
    """
    PURPOSE: Return the first present value among candidate keys.

    Args:
        payload: Decoded webhook payload.
        *keys:   Candidate field names in priority order.

    Returns:
        Optional[str]: Display string of the first present value, or None.
    """
    for key in keys:
        text = _display(payload.get(key))
        if text is not None:
            return text
    return None


def normalize_direction(direction: str) -> str:
    """
    Map a free-form direction to "Buy"/"Sell" when it clearly names one.

    "strategy.entrylong" is neither, so it passes through unchanged.
    """
    upper = direction.upper()
    if "BUY" in upper:
        return "Buy"
    if "SELL" in upper:
        return "Sell"
    return direction


def has_identifying_fields(payload: Mapping[str, Any]) -> bool:
    """True if the payload names a ticker, symbol or direction."""
    return resolve_field(payload, *IDENTIFYING_KEYS) is not None


# ════════════════════════════════════════════════════════════════
# Message Composition
# ════════════════════════════════════════════════════════════════


def escape_markdown(text: str) -> str:
    """Backslash-escape legacy Markdown characters in text outside any entity."""
    return "".join(f"\\{char}" if char in MARKDOWN_SPECIAL else char for char in text)


def _inside_entity(text: str, delimiter: str) -> str:
    """
    Make text safe inside a `*bold*` or `` `code` `` entity.

    Telegram does not honour escapes inside an entity and ends it at the first
    closing delimiter, so that delimiter is dropped from the value.
    """
    return text.replace(delimiter, "")


def format_signal(payload: Mapping[str, Any]) -> str:
    """
    PURPOSE: Render a payload as the Markdown "FORMATTED SIGNAL" notification.

    The header line is always present; strategy, timeframe, contracts, SL and
    TP1 lines only appear when their value resolved.

    Args:
        payload: Decoded webhook payload.

    Returns:
        str: Telegram Markdown message text.
    """
    ticker = resolve_field(payload, *TICKER_KEYS) or "Unknown"
    raw_direction = resolve_field(payload, "direction")
    direction = normalize_direction(raw_direction) if raw_direction else "Signal"
    entry = resolve_field(payload, *ENTRY_KEYS) or NOT_AVAILABLE

    optional_lines = (
        ("📊", "Strategy", resolve_field(payload, "strategy")),
        ("⏰", "Timeframe", resolve_field(payload, "timeframe")),
        ("📦", "Contracts", resolve_field(payload, "contracts")),
        ("🛑", "SL", resolve_field(payload, *STOP_LOSS_KEYS)),
        ("🎯", "TP1", resolve_field(payload, *TAKE_PROFIT_KEYS)),
    )

    lines = [
        "🚨 *FORMATTED SIGNAL*",
        f"📈 *{_inside_entity(f'{direction} {ticker} @ {entry}', '*')}*",
    ]
    for emoji, label, value in optional_lines:
        if value is not None:
            lines.append(f"{emoji} *{label}:* `{_inside_entity(value, '`')}`")
    return "\n".join(lines)


def format_raw_message(raw_body: str, limit: int = 800) -> str:
    """Wrap the first `limit` characters of the raw body in a Markdown code block."""
    return f"📥 *WEBHOOK RECEIVED*\n\n```\n{raw_body[:limit]}\n```"


def format_error_message(error: BaseException) -> str:
    """Markdown notice sent to every channel when webhook handling blows up."""
    return f"❌ *WEBHOOK ERROR*\n\n{escape_markdown(str(error))}"
