"""Integer evaluation of canonical captcha expressions with a step trace."""
from __future__ import annotations

import re
from functools import lru_cache
from typing import List, Tuple

from core.config import settings
from core.logger import logger
from services.captcha.errors import EvaluationError

# NUMBER (OPERATOR NUMBER)+ ; no signs, no parentheses
EXPRESSION_PATTERN = re.compile(r"\d+(?:[+\-*/]\d+)+")


class ExpressionEvaluator:
    """
    Two-pass evaluator: the expression is split into segments on + and -,
    each segment is reduced left-to-right with * and / (floor division),
    then the segments are summed left-to-right.

    The trace starts with the expression and ends with the result. Between
    them, a segment step is recorded while the trace holds fewer than
    ``segment_step_cap`` entries and a combination step while it holds fewer
    than ``combine_step_cap``.
    """

    def __init__(self, segment_step_cap: int = 3, combine_step_cap: int = 4) -> None:
        self.segment_step_cap = segment_step_cap
        self.combine_step_cap = combine_step_cap

    def evaluate(self, expression: str) -> Tuple[int, List[str]]:
        if not expression or not EXPRESSION_PATTERN.fullmatch(expression):
            raise EvaluationError(f"Malformed expression: {expression!r}")

        logger.debug("[EVAL] Calculating expression: %s", expression)
        try:
            return self._evaluate(expression)
        except EvaluationError:
            raise
        except ValueError as exc:
            # int <-> str conversion limit (sys.get_int_max_str_digits)
            raise EvaluationError(f"Number too large in expression: {exc}") from exc

    def _evaluate(self, expression: str) -> Tuple[int, List[str]]:
        trace = [expression]
        parts = re.split(r"([+\-])", expression)

        total = 0
        for i in range(0, len(parts), 2):
            value = self._evaluate_segment(parts[i], trace)
            if i == 0:
                total = value
                continue

            sign = parts[i - 1]
            previous = total
            total = previous + value if sign == "+" else previous - value
            if len(trace) < self.combine_step_cap:
                trace.append(f"{previous}{sign}{value}={total}")

        trace.append(str(total))
        logger.debug("[EVAL] Result: %s", " = ".join(trace))
        return total, trace

    def _evaluate_segment(self, segment: str, trace: List[str]) -> int:
        tokens = re.split(r"([*/])", segment)
        value = int(tokens[0])
        for op, operand in zip(tokens[1::2], tokens[2::2]):
            number = int(operand)
            previous = value
            if op == "*":
                value *= number
            else:
                if number == 0:
                    raise EvaluationError(f"Division by zero in {segment!r}")
                value //= number
            if len(trace) < self.segment_step_cap:
                trace.append(f"{previous}{op}{number}={value}")
        return value


@lru_cache(maxsize=1)
def default_evaluator() -> ExpressionEvaluator:
    return ExpressionEvaluator(
        segment_step_cap=settings.segment_step_cap,
        combine_step_cap=settings.combine_step_cap,
    )


def evaluate(expression: str) -> Tuple[int, List[str]]:
    """Result and calculation trace; raises EvaluationError."""
    return default_evaluator().evaluate(expression)
