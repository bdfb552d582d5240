import json
import logging
import sys
from decimal import Decimal
from enum import Enum
from functools import lru_cache
from typing import Any, Dict, FrozenSet, List, Mapping, NamedTuple, Optional, Set, Tuple, Union
from pydantic import BaseModel, ConfigDict

from .exceptions import MalformedRuleError
from .models.rules import EligibilityRule

logger = logging.getLogger(__name__)

FLOAT_EPSILON = sys.float_info.epsilon
SCALAR_TYPES = (str, int, float, bool, type(None))


class CompareOp(str, Enum):
    EQ = "=="
    NE = "!="
    GT = ">"
    GTE = ">="
    LT = "<"
    LTE = "<="


class LogicalOp(str, Enum):
    AND = "and"
    OR = "or"
    NOT = "not"


class ExpressionNode(BaseModel):
    """Base class for rule expression nodes"""
    model_config = ConfigDict(frozen=True)


class LiteralValue(ExpressionNode):
    value: Any = None


class VarRef(ExpressionNode):
    key: str
    default: Any = None


class Compare(ExpressionNode):
    op: CompareOp
    left: "Expression"
    right: "Expression"


class Membership(ExpressionNode):
    needle: "Expression"
    haystack: "Expression"


class Logical(ExpressionNode):
    op: LogicalOp
    operands: Tuple["Expression", ...]


Expression = Union[LiteralValue, VarRef, Compare, Membership, Logical]

Compare.model_rebuild()
Membership.model_rebuild()
Logical.model_rebuild()


class CriteriaOutcome(NamedTuple):
    """Disjoint criterion sets derived from one or more expressions"""
    met: FrozenSet[str]
    unmet: FrozenSet[str]
    missing: FrozenSet[str]


class RuleParser:
    """Parses JSON Logic rule text into a closed expression tree"""

    COMPARE_OPERATORS = {
        "==": CompareOp.EQ,
        "!=": CompareOp.NE,
        ">": CompareOp.GT,
        ">=": CompareOp.GTE,
        "<": CompareOp.LT,
        "<=": CompareOp.LTE,
    }
    BETWEEN_OPERATORS = {"<", "<="}
    SUPPORTED_OPERATORS = set(COMPARE_OPERATORS) | {"var", "in", "and", "or", "!", "!!"}

    @classmethod
    def parse(cls, rule_logic: Union[str, Mapping[str, Any]], rule_id: Optional[str] = None) -> Expression:
        """
        Parse rule logic into an expression tree

        Args:
            rule_logic: JSON Logic as text or as an already-decoded value
            rule_id: Rule identifier reported in errors

        Raises:
            MalformedRuleError: If the logic is blank, invalid JSON or uses an unsupported shape
        """
        if isinstance(rule_logic, str):
            return _parse_text(rule_logic, rule_id)
        return cls._parse_node(rule_logic, rule_id)

    @classmethod
    def _parse_node(cls, data: Any, rule_id: Optional[str]) -> Expression:
        if isinstance(data, dict):
            return cls._parse_operation(data, rule_id)
        if isinstance(data, list):
            return LiteralValue(value=cls._parse_literal_list(data, rule_id))
        if isinstance(data, SCALAR_TYPES):
            return LiteralValue(value=data)
        raise MalformedRuleError(rule_id, f"Unsupported value of type {type(data).__name__}")

    @classmethod
    def _parse_literal_list(cls, items: List[Any], rule_id: Optional[str]) -> Tuple[Any, ...]:
        for item in items:
            if not isinstance(item, SCALAR_TYPES):
                raise MalformedRuleError(rule_id, "List literals may only contain scalar values")
        return tuple(items)

    @classmethod
    def _parse_operation(cls, data: Dict[str, Any], rule_id: Optional[str]) -> Expression:
        if len(data) != 1:
            raise MalformedRuleError(rule_id, f"Operation objects must have exactly one operator, got {len(data)}")

        op, args = next(iter(data.items()))
        if op not in cls.SUPPORTED_OPERATORS:
            raise MalformedRuleError(rule_id, f"Unsupported operator '{op}'")

        if op == "var":
            return cls._parse_var(args, rule_id)

        if op in ("!", "!!"):
            if isinstance(args, list):
                if len(args) != 1:
                    raise MalformedRuleError(rule_id, f"'{op}' takes exactly one operand")
                args = args[0]
            operand = cls._parse_node(args, rule_id)
            negated = Logical(op=LogicalOp.NOT, operands=(operand,))
            if op == "!!":
                return Logical(op=LogicalOp.NOT, operands=(negated,))
            return negated

        if not isinstance(args, list):
            raise MalformedRuleError(rule_id, f"Operands of '{op}' must be a list")
        operands = tuple(cls._parse_node(arg, rule_id) for arg in args)

        if op in ("and", "or"):
            if not operands:
                raise MalformedRuleError(rule_id, f"'{op}' needs at least one operand")
            return Logical(op=LogicalOp(op), operands=operands)

        if op == "in":
            if len(operands) != 2:
                raise MalformedRuleError(rule_id, "'in' takes exactly two operands")
            return Membership(needle=operands[0], haystack=operands[1])

        compare_op = cls.COMPARE_OPERATORS[op]
        if len(operands) == 3 and op in cls.BETWEEN_OPERATORS:
            # {"<": [a, b, c]} means a < b and b < c
            return Logical(
                op=LogicalOp.AND,
                operands=(
                    Compare(op=compare_op, left=operands[0], right=operands[1]),
                    Compare(op=compare_op, left=operands[1], right=operands[2]),
                )
            )
        if len(operands) != 2:
            raise MalformedRuleError(rule_id, f"'{op}' takes exactly two operands")
        return Compare(op=compare_op, left=operands[0], right=operands[1])

    @classmethod
    def _parse_var(cls, args: Any, rule_id: Optional[str]) -> VarRef:
        default = None
        if isinstance(args, list):
            if not 1 <= len(args) <= 2:
                raise MalformedRuleError(rule_id, "'var' takes a key and an optional default")
            if len(args) == 2:
                default = args[1]
                if not isinstance(default, SCALAR_TYPES):
                    raise MalformedRuleError(rule_id, "'var' default must be a scalar value")
            args = args[0]
        if not isinstance(args, str) or not args.strip():
            raise MalformedRuleError(rule_id, "'var' key must be a non-empty string")
        return VarRef(key=args, default=default)


@lru_cache(maxsize=1024)
def _parse_text(rule_logic: str, rule_id: Optional[str]) -> Expression:
    if not rule_logic.strip():
        raise MalformedRuleError(rule_id, "Rule logic is required")
    try:
        data = json.loads(rule_logic)
    except json.JSONDecodeError as e:
        raise MalformedRuleError(rule_id, f"Invalid JSON ({e.msg} at position {e.pos})") from e
    return RuleParser._parse_node(data, rule_id)


class RulesEvaluator:
    """Evaluates rule expression trees against an answer map"""

    SUPPORTED_OPERATORS = RuleParser.SUPPORTED_OPERATORS

    @staticmethod
    def is_truthy(value: Any) -> bool:
        """Truthiness used to turn an evaluated value into a match decision"""
        if value is None:
            return False
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float, Decimal)):
            return abs(value) > FLOAT_EPSILON
        if isinstance(value, str):
            return bool(value.strip())
        if isinstance(value, (list, tuple, set, frozenset, dict)):
            return len(value) > 0
        return True

    @staticmethod
    def evaluate(expression: Expression, answers: Optional[Mapping[str, Any]]) -> Any:
        """
        Evaluate an expression tree

        Args:
            expression: Parsed expression
            answers: Answer key to value; missing keys resolve to None

        Returns:
            The evaluated value (booleans for comparisons and logical nodes)
        """
        answers = answers or {}

        if isinstance(expression, LiteralValue):
            return expression.value

        if isinstance(expression, VarRef):
            value = answers.get(expression.key)
            return expression.default if value is None else value

        if isinstance(expression, Compare):
            left = RulesEvaluator.evaluate(expression.left, answers)
            right = RulesEvaluator.evaluate(expression.right, answers)
            return RulesEvaluator._compare(expression.op, left, right)

        if isinstance(expression, Membership):
            needle = RulesEvaluator.evaluate(expression.needle, answers)
            haystack = RulesEvaluator.evaluate(expression.haystack, answers)
            return RulesEvaluator._contains(needle, haystack)

        if isinstance(expression, Logical):
            if expression.op is LogicalOp.NOT:
                return not RulesEvaluator.is_truthy(RulesEvaluator.evaluate(expression.operands[0], answers))
            if expression.op is LogicalOp.AND:
                for operand in expression.operands:
                    if not RulesEvaluator.is_truthy(RulesEvaluator.evaluate(operand, answers)):
                        return False
                return True
            for operand in expression.operands:
                if RulesEvaluator.is_truthy(RulesEvaluator.evaluate(operand, answers)):
                    return True
            return False

        raise TypeError(f"Unsupported expression node: {type(expression).__name__}")

    @staticmethod
    def evaluate_rule(rule: EligibilityRule, answers: Optional[Mapping[str, Any]]) -> bool:
        """
        Evaluate a rule against answers

        Raises:
            MalformedRuleError: If the rule logic cannot be parsed
        """
        expression = RuleParser.parse(rule.rule_logic, rule.id)
        return RulesEvaluator.is_truthy(RulesEvaluator.evaluate(expression, answers))

    @staticmethod
    def collect_criteria(expression: Expression, answers: Optional[Mapping[str, Any]]) -> CriteriaOutcome:
        """
        Classify every answer key tested by the expression as met, unmet or missing

        A key tested by several comparisons takes the worst outcome:
        missing over unmet over met.
        """
        answers = answers or {}
        met: Set[str] = set()
        unmet: Set[str] = set()
        missing: Set[str] = set()

        for leaf, negated in RulesEvaluator._iter_leaves(expression):
            refs = RulesEvaluator._var_refs(leaf)
            if not refs:
                continue
            unanswered = {ref.key for ref in refs if answers.get(ref.key) is None and ref.default is None}
            if unanswered:
                missing.update(unanswered)
                continue
            keys = {ref.key for ref in refs}
            holds = RulesEvaluator.is_truthy(RulesEvaluator.evaluate(leaf, answers))
            if holds != negated:
                met.update(keys)
            else:
                unmet.update(keys)

        unmet -= missing
        met -= missing | unmet
        return CriteriaOutcome(frozenset(met), frozenset(unmet), frozenset(missing))

    @staticmethod
    def validate_rule_logic(rule_logic: Union[str, Mapping[str, Any]]) -> Tuple[bool, str]:
        """Validate rule logic without evaluating it"""
        try:
            RuleParser.parse(rule_logic)
        except MalformedRuleError as e:
            return False, e.detail
        return True, "Valid rule logic"

    @staticmethod
    def referenced_keys(expression: Expression) -> FrozenSet[str]:
        """Answer keys read anywhere in the expression"""
        return frozenset(ref.key for ref in RulesEvaluator._var_refs(expression))

    @staticmethod
    def _iter_leaves(expression: Expression, negated: bool = False):
        """Yield (leaf, negated) pairs; negated flips under each 'not'"""
        if isinstance(expression, Logical):
            if expression.op is LogicalOp.NOT:
                negated = not negated
            for operand in expression.operands:
                yield from RulesEvaluator._iter_leaves(operand, negated)
        elif isinstance(expression, (Compare, Membership, VarRef)):
            yield expression, negated

    @staticmethod
    def _var_refs(expression: Expression) -> List[VarRef]:
        if isinstance(expression, VarRef):
            return [expression]
        if isinstance(expression, Compare):
            return RulesEvaluator._var_refs(expression.left) + RulesEvaluator._var_refs(expression.right)
        if isinstance(expression, Membership):
            return RulesEvaluator._var_refs(expression.needle) + RulesEvaluator._var_refs(expression.haystack)
        if isinstance(expression, Logical):
            refs: List[VarRef] = []
            for operand in expression.operands:
                refs.extend(RulesEvaluator._var_refs(operand))
            return refs
        return []

    @staticmethod
    def _to_number(value: Any) -> Optional[Union[int, float, Decimal]]:
        """Numeric view of a value; numeric strings are coerced, booleans are not numbers"""
        if isinstance(value, bool):
            return None
        if isinstance(value, (int, float, Decimal)):
            return value
        if isinstance(value, str):
            try:
                return float(value.strip())
            except ValueError:
                return None
        return None

    @staticmethod
    def _compare(op: CompareOp, left: Any, right: Any) -> bool:
        if left is None or right is None:
            both_null = left is None and right is None
            if op is CompareOp.EQ:
                return both_null
            if op is CompareOp.NE:
                return not both_null
            return False

        left_num = RulesEvaluator._to_number(left)
        right_num = RulesEvaluator._to_number(right)
        numeric = left_num is not None and right_num is not None and not (
            isinstance(left, str) and isinstance(right, str)
        )

        if op in (CompareOp.EQ, CompareOp.NE):
            equal = left_num == right_num if numeric else left == right
            return equal if op is CompareOp.EQ else not equal

        if numeric:
            a, b = left_num, right_num
        elif isinstance(left, str) and isinstance(right, str):
            a, b = left, right
        else:
            return False

        if op is CompareOp.GT:
            return a > b
        if op is CompareOp.GTE:
            return a >= b
        if op is CompareOp.LT:
            return a < b
        return a <= b

    @staticmethod
    def _contains(needle: Any, haystack: Any) -> bool:
        if needle is None or haystack is None:
            return False
        if isinstance(haystack, (list, tuple, set, frozenset)):
            return needle in haystack
        if isinstance(haystack, str) and isinstance(needle, str):
            return needle in haystack
        return False
