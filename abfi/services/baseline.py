from typing import Any, Dict, Iterable, Optional

import pandas as pd

from abfi.schemas.stress_test import StressTestBaseline, TransactionRecord
from abfi.services.stress_testing import (
    DEFAULT_AVERAGE_PRICE,
    DEFAULT_TOP_SUPPLIER_PERCENTAGE,
    generate_default_baseline,
)


def summarise_transactions(transactions: Iterable[TransactionRecord]) -> Dict[str, Any]:
    """
    Volume-weighted price, supplier count and top-supplier share from a
    buyer's completed transactions. Missing volumes and prices count as 0.
    An empty history returns an empty dict so platform defaults apply.
    """
    rows = [t.model_dump() for t in transactions]
    if not rows:
        return {}

    df = pd.DataFrame(rows, columns=["volume_tonnes", "price_per_tonne", "supplier_id"])
    df["volume_tonnes"] = pd.to_numeric(df["volume_tonnes"], errors="coerce").fillna(0.0)
    df["price_per_tonne"] = pd.to_numeric(df["price_per_tonne"], errors="coerce").fillna(0.0)

    total_volume = float(df["volume_tonnes"].sum())
    total_value = float((df["volume_tonnes"] * df["price_per_tonne"]).sum())

    # blank supplier ids are not counted as suppliers
    has_supplier = df["supplier_id"].fillna("") != ""
    by_supplier = df[has_supplier].groupby("supplier_id")["volume_tonnes"].sum()
    max_supplier_volume = float(by_supplier.max()) if not by_supplier.empty else 0.0

    return {
        "average_price": total_value / total_volume if total_volume > 0 else DEFAULT_AVERAGE_PRICE,
        "supplier_count": int(by_supplier.size) or 1,
        "top_supplier_percentage": (
            max_supplier_volume / total_volume if total_volume > 0 else DEFAULT_TOP_SUPPLIER_PERCENTAGE
        ),
    }


def derive_baseline(
    transactions: Iterable[TransactionRecord] = (),
    annual_volume_requirement: Optional[float] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> StressTestBaseline:
    """
    Baseline assumptions for a buyer: transaction history first, then any
    caller overrides, then platform defaults for whatever is still unset.
    """
    figures: Dict[str, Any] = {"annual_volume_requirement": annual_volume_requirement}
    figures.update(summarise_transactions(transactions))
    figures.update({k: v for k, v in (overrides or {}).items() if v is not None})
    return generate_default_baseline(**figures)
