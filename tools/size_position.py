"""
Quick position sizing from the shell using the same engine as the editor.

Usage:
    python tools/size_position.py --entry 100 --stop 95 --leverage 10 --margin 1000
    python tools/size_position.py --entry 100 --stop 105 --leverage 5 --side short --one-r 50
    python tools/size_position.py --entry 100 --stop 95 --leverage 10 --portfolio 5000 --risk-pct 1

Exactly one of --margin / --position-size / --quantity / --one-r / --portfolio is
required. Prints the four metrics (raw and formatted) as JSON.
"""

import argparse
import json
import sys
from pathlib import Path

repo_root = Path(__file__).resolve().parents[1]
if str(repo_root) not in sys.path:
    sys.path.append(str(repo_root))

from position_metrics.core.config import get_settings  # noqa: E402
from position_metrics.editor.formatting import format_metrics  # noqa: E402
from position_metrics.risk.metrics_engine import (  # noqa: E402
    MetricField,
    MetricsEngineError,
    PositionType,
    TradeParameters,
    calculate_from,
    calculate_from_risk,
    max_safe_leverage,
    risk_per_unit,
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Convert between margin, cost, quantity and 1R.")
    parser.add_argument("--entry", type=float, required=True, help="Entry price")
    parser.add_argument("--stop", type=float, required=True, help="Stop-loss price")
    parser.add_argument("--leverage", type=float, default=1.0)
    parser.add_argument("--side", choices=["long", "short"], default="long")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--margin", type=float)
    source.add_argument("--position-size", type=float)
    source.add_argument("--quantity", type=float)
    source.add_argument("--one-r", type=float)
    source.add_argument("--portfolio", type=float, help="Account equity; combine with --risk-pct")
    parser.add_argument("--risk-pct", type=float, default=1.0, help="Percent of portfolio risked per trade")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    params = TradeParameters(
        entry_price=args.entry,
        stop_loss=args.stop,
        leverage=args.leverage,
        position_type=PositionType(args.side.upper()),
    )
    try:
        if args.portfolio is not None:
            metrics = calculate_from_risk(args.portfolio, args.risk_pct, params)
        else:
            field = next(f for f in MetricField if getattr(args, f.value) is not None)
            metrics = calculate_from(field, getattr(args, field.value), params)
    except MetricsEngineError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    settings = get_settings()
    formatted = format_metrics(
        metrics,
        currency_decimals=settings.currency_decimals,
        quantity_decimals=settings.quantity_decimals,
    )
    print(
        json.dumps(
            {
                "metrics": metrics.as_dict(),
                "formatted": {field.value: text for field, text in formatted.items()},
                "risk_per_unit": risk_per_unit(params),
                "max_leverage": max_safe_leverage(params),
            },
            indent=2,
        )
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
