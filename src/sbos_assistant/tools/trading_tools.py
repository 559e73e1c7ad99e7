from collections import defaultdict
from typing import Any

from sbos_assistant.storage.records import RecordKind
from sbos_assistant.tool import ToolContext
from sbos_assistant.tools.args import ToolArgs
from sbos_assistant.tools.base import RecordTool, date_property, pick, string_property
from sbos_assistant.tools.names import ToolName

DIRECTIONS = ("long", "short")

_TRADE_FIELDS = ("id", "date", "instrument", "direction", "entry_price", "exit_price", "size", "pnl", "strategy")


def _trade_pnl(trade: dict[str, Any]) -> float | None:
    pnl = trade.get("pnl")
    if isinstance(pnl, (int, float)):
        return float(pnl)
    entry, exit_, size = trade.get("entry_price"), trade.get("exit_price"), trade.get("size")
    if all(isinstance(v, (int, float)) for v in (entry, exit_, size)):
        sign = 1 if trade.get("direction") == "long" else -1
        return round(sign * (exit_ - entry) * size, 2)
    return None


class GetTradingJournalTool(RecordTool):
    tool_name = ToolName.GET_TRADING_JOURNAL
    tool_description = "Get trading journal entries (logged trades) for a date range."
    schema = {
        "type": "object",
        "properties": {
            "startDate": date_property("Start date"),
            "endDate": date_property("End date"),
            "limit": {"type": "number", "description": "Max trades to return (default 20)"},
        },
        "required": [],
    }

    def run(self, context: ToolContext, args: ToolArgs) -> Any:
        trades = self._records.list(
            context.user_id,
            RecordKind.TRADE,
            range_field="date",
            since=args.iso_date("startDate"),
            until=args.iso_date("endDate"),
            order_by="date",
            descending=True,
            limit=args.integer("limit", default=20, minimum=1, maximum=500),
        )
        return [{**pick(t, *_TRADE_FIELDS), "pnl": _trade_pnl(t), "notes": t.get("notes")} for t in trades]


class LogTradeTool(RecordTool):
    tool_name = ToolName.LOG_TRADE
    tool_description = (
        "Log a trade in the trading journal. If pnl is omitted it is computed from entry, exit and size."
    )
    mutating = True
    schema = {
        "type": "object",
        "properties": {
            "instrument": string_property("Instrument/symbol, e.g. EURUSD, ES, BTC"),
            "direction": string_property("long or short"),
            "entryPrice": {"type": "number"},
            "exitPrice": {"type": "number"},
            "size": {"type": "number", "description": "Position size (units/contracts)"},
            "pnl": {"type": "number", "description": "Realized profit or loss"},
            "strategy": string_property("Strategy name"),
            "notes": string_property("What happened, lessons learned"),
            "date": date_property("Trade date (default today)"),
        },
        "required": ["instrument", "direction"],
    }

    def run(self, context: ToolContext, args: ToolArgs) -> Any:
        fields = {
            "date": args.iso_date("date", default=context.today),
            "instrument": args.string("instrument", required=True).upper(),
            "direction": args.choice("direction", DIRECTIONS, required=True),
            "entry_price": args.number("entryPrice"),
            "exit_price": args.number("exitPrice"),
            "size": args.number("size", minimum=0),
            "pnl": args.number("pnl"),
            "strategy": args.string("strategy"),
            "notes": args.string("notes"),
        }
        fields["pnl"] = _trade_pnl(fields)
        trade = self._records.create(context.user_id, RecordKind.TRADE, fields)
        return {"success": True, "trade": pick(trade, "id", "date", "instrument", "direction", "pnl")}


class AnalyzeTradingPerformanceTool(RecordTool):
    tool_name = ToolName.ANALYZE_TRADING_PERFORMANCE
    tool_description = (
        "Analyze trading performance over a date range: win rate, total and average P&L, "
        "and a breakdown per instrument and strategy."
    )
    schema = {
        "type": "object",
        "properties": {
            "startDate": date_property("Start date"),
            "endDate": date_property("End date"),
        },
        "required": [],
    }

    def run(self, context: ToolContext, args: ToolArgs) -> Any:
        trades = self._records.list(
            context.user_id,
            RecordKind.TRADE,
            range_field="date",
            since=args.iso_date("startDate"),
            until=args.iso_date("endDate"),
        )
        results = [p for p in (_trade_pnl(t) for t in trades) if p is not None]
        wins = [p for p in results if p > 0]
        losses = [p for p in results if p < 0]

        by_instrument: dict[str, float] = defaultdict(float)
        by_strategy: dict[str, float] = defaultdict(float)
        for trade in trades:
            pnl = _trade_pnl(trade)
            if pnl is None:
                continue
            by_instrument[trade.get("instrument") or "unknown"] += pnl
            by_strategy[trade.get("strategy") or "unspecified"] += pnl

        return {
            "trades": len(trades),
            "tradesWithResult": len(results),
            "winRate": round(len(wins) / len(results), 3) if results else None,
            "totalPnl": round(sum(results), 2),
            "averageWin": round(sum(wins) / len(wins), 2) if wins else None,
            "averageLoss": round(sum(losses) / len(losses), 2) if losses else None,
            "byInstrument": {k: round(v, 2) for k, v in by_instrument.items()},
            "byStrategy": {k: round(v, 2) for k, v in by_strategy.items()},
        }
