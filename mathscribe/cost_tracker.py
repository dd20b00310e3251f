"""
Cost Tracker Module

Tracks model usage and estimated cost for each pipeline stage.
One tracker belongs to one gateway instance.
"""

from dataclasses import dataclass, field
import threading


# Pricing per 1M tokens (update as needed)
PRICING = {
    "gemini-3-pro-preview": {
        "input": 2.00,
        "output": 12.00,
    },
    "gemini-3-pro-image-preview": {
        "input": 2.00,
        "output": 120.00,  # image output tokens
    },
    "gemini-2.5-flash": {
        "input": 0.30,
        "output": 2.50,
    },
    "gemini-2.5-flash-image": {
        "input": 0.30,
        "output": 30.00,
    },
    "default": {
        "input": 0.30,
        "output": 2.50,
    }
}


@dataclass
class APICall:
    """Record of a single model call."""
    stage: str
    model: str
    tier: str
    input_tokens: int
    output_tokens: int
    duration_ms: float
    cost: float


@dataclass
class CostTracker:
    """Track model usage and costs across pipeline stages (thread-safe)."""

    calls: list[APICall] = field(default_factory=list)

    total_input_tokens: int = 0
    total_output_tokens: int = 0
    total_cost: float = 0.0
    total_duration_ms: float = 0.0

    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    @property
    def total_tokens(self) -> int:
        return self.total_input_tokens + self.total_output_tokens

    def add_call(
        self,
        stage: str,
        model: str,
        tier: str,
        input_tokens: int,
        output_tokens: int,
        duration_ms: float
    ) -> APICall:
        """Record a model call."""
        pricing = PRICING.get(model, PRICING["default"])
        cost = (
            (input_tokens / 1_000_000) * pricing["input"]
            + (output_tokens / 1_000_000) * pricing["output"]
        )

        call = APICall(
            stage=stage,
            model=model,
            tier=tier,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            duration_ms=duration_ms,
            cost=cost,
        )

        with self._lock:
            self.calls.append(call)
            self.total_input_tokens += input_tokens
            self.total_output_tokens += output_tokens
            self.total_cost += cost
            self.total_duration_ms += duration_ms

        return call

    def get_stage_summary(self) -> dict[str, dict]:
        """Get cost breakdown by stage."""
        with self._lock:
            summary = {}
            for call in self.calls:
                entry = summary.setdefault(call.stage, {
                    "calls": 0,
                    "input_tokens": 0,
                    "output_tokens": 0,
                    "cost": 0.0,
                    "duration_ms": 0.0,
                })
                entry["calls"] += 1
                entry["input_tokens"] += call.input_tokens
                entry["output_tokens"] += call.output_tokens
                entry["cost"] += call.cost
                entry["duration_ms"] += call.duration_ms
            return summary

    def to_dict(self) -> dict:
        """Export as dictionary for JSON serialization."""
        with self._lock:
            return {
                "total_input_tokens": self.total_input_tokens,
                "total_output_tokens": self.total_output_tokens,
                "total_tokens": self.total_tokens,
                "total_cost_usd": round(self.total_cost, 6),
                "total_duration_ms": round(self.total_duration_ms, 2),
                "stages": self.get_stage_summary(),
                "calls": [
                    {
                        "stage": c.stage,
                        "model": c.model,
                        "tier": c.tier,
                        "input_tokens": c.input_tokens,
                        "output_tokens": c.output_tokens,
                        "cost_usd": round(c.cost, 6),
                        "duration_ms": round(c.duration_ms, 2),
                    }
                    for c in self.calls
                ]
            }


def extract_usage_from_response(response) -> tuple[int, int]:
    """Extract token usage from a Gemini response, (0, 0) when absent."""
    usage = getattr(response, "usage_metadata", None)
    if usage is None:
        return (0, 0)
    return (
        getattr(usage, "prompt_token_count", 0) or 0,
        getattr(usage, "candidates_token_count", 0) or 0,
    )
