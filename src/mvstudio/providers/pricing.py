"""Static per-provider price table, in cents.

Cost is fixed at submission time and never reconciled against vendor billing.
"""

from mvstudio.errors.exceptions import InvalidInputError

PRICE_TABLE_CENTS: dict[str, int] = {
    "suno": 2,
    "musicgpt": 3,
    "kling": 1500,
    "runway": 1500,
    "youtube": 0,
    "tiktok": 0,
    "facebook": 0,
}


def compute_cost(provider: str) -> int:
    try:
        return PRICE_TABLE_CENTS[provider]
    except KeyError:
        raise InvalidInputError(f"No price configured for provider '{provider}'") from None
