"""
Translation of compiled filters into AQL.

Attribute names and values are always passed as bind parameters; the
collection is bound as ``@@collection``. Paths that fan out across arrays
are expanded with inline ``[* RETURN ...]`` projections so that a condition
holds when any element satisfies it.
"""
from typing import Any, Dict, List, Optional, Tuple

from arangomap.query.operations import CompiledFilter, FilterCondition, QueryOperator
from arangomap.storage.documents import to_json

_COMPARISONS = {
    QueryOperator.GREATER_THAN: ">",
    QueryOperator.GREATER_EQUAL: ">=",
    QueryOperator.LESS_THAN: "<",
    QueryOperator.LESS_EQUAL: "<=",
}


class AQLBuilder:
    """Builds AQL statements with their bind variables."""

    def __init__(self, variable: str = "doc") -> None:
        self.variable = variable
        self.bind_vars: Dict[str, Any] = {}
        self._counters = {"a": 0, "v": 0}

    def bind(self, value: Any, prefix: str = "v") -> str:
        """Register a bind variable and return its placeholder."""
        name = f"{prefix}{self._counters[prefix]}"
        self._counters[prefix] += 1
        self.bind_vars[name] = to_json(value) if prefix == "v" else value
        return f"@{name}"

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def _expand(self, base: str, segments: List[str], start: int, fanned: set) -> Tuple[str, int]:
        expr = base
        for index in range(start, len(segments)):
            expr += f"[{self.bind(segments[index], 'a')}]"
            prefix = ".".join(segments[:index + 1])
            if prefix in fanned and index < len(segments) - 1:
                inner, depth = self._expand("CURRENT", segments, index + 1, fanned)
                return f"{expr}[* RETURN {inner}]", depth + 1
        return expr, 0

    def path_expression(self, condition: FilterCondition) -> Tuple[str, bool]:
        """
        Build the expression reading a condition's path.

        Returns:
            ``(expression, is_list)``; when ``is_list`` is True the expression
            evaluates to the list of candidate values
        """
        segments = condition.segments
        fanned = {p for p in condition.array_paths if p != condition.path}
        expr, depth = self._expand(self.variable, segments, 0, fanned)
        element_match = condition.path in condition.array_paths
        if depth == 0 and not element_match:
            return expr, False
        if depth == 0:
            return f"(IS_ARRAY({expr}) ? {expr} : [{expr}])", True
        flatten_depth = depth if element_match else depth - 1
        if flatten_depth > 0:
            expr = f"FLATTEN({expr}, {flatten_depth})"
        return expr, True

    # ------------------------------------------------------------------
    # Conditions
    # ------------------------------------------------------------------

    def compile_condition(self, condition: FilterCondition) -> str:
        expr, is_list = self.path_expression(condition)
        operator = condition.operator
        value = condition.value

        if operator is QueryOperator.EXISTS:
            if is_list:
                clause = f"LENGTH({expr}[* FILTER CURRENT != null]) > 0"
            else:
                clause = f"{expr} != null"
            return clause if value else f"NOT ({clause})"

        if operator is QueryOperator.EQUALS:
            if not is_list:
                return f"{expr} == {self.bind(value)}"
            if value is None:
                return f"(LENGTH({expr}) == 0 OR null IN {expr})"
            return f"{self.bind(value)} IN {expr}"

        if operator is QueryOperator.NOT_EQUALS:
            if not is_list:
                return f"{expr} != {self.bind(value)}"
            if value is None:
                return f"(LENGTH({expr}) > 0 AND null NOT IN {expr})"
            return f"{self.bind(value)} NOT IN {expr}"

        if operator in (QueryOperator.IN, QueryOperator.NOT_IN):
            placeholder = self.bind(list(value or []))
            if is_list:
                clause = f"LENGTH(INTERSECTION({expr}, {placeholder})) > 0"
            else:
                clause = f"{expr} IN {placeholder}"
            return clause if operator is QueryOperator.IN else f"NOT ({clause})"

        symbol = _COMPARISONS[operator]
        placeholder = self.bind(value)
        if is_list:
            return f"LENGTH({expr}[* FILTER CURRENT != null AND CURRENT {symbol} {placeholder}]) > 0"
        return f"({expr} != null AND {expr} {symbol} {placeholder})"

    def compile_filter(self, query: CompiledFilter) -> Optional[str]:
        """Compile a filter into an AQL boolean expression, or None if empty."""
        parts: List[str] = []
        for condition in query.conditions:
            if isinstance(condition, CompiledFilter):
                nested = self.compile_filter(condition)
                if nested is None:
                    nested = "true"
                parts.append(f"({nested})")
            else:
                parts.append(self.compile_condition(condition))
        if not parts:
            return None
        return f" {query.combine_operator} ".join(parts)

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    def _for_filter(self, collection: str, query: CompiledFilter) -> str:
        self.bind_vars["@collection"] = collection
        statement = f"FOR {self.variable} IN @@collection"
        clause = self.compile_filter(query)
        if clause:
            statement += f" FILTER {clause}"
        return statement

    def compile_query(self, collection: str, query: CompiledFilter, limit: Optional[int] = None) -> str:
        statement = self._for_filter(collection, query)
        if limit is not None:
            statement += f" LIMIT {self.bind(int(limit))}"
        return f"{statement} RETURN {self.variable}"

    def compile_count(self, collection: str, query: CompiledFilter) -> str:
        statement = self._for_filter(collection, query)
        return f"{statement} COLLECT WITH COUNT INTO total RETURN total"

    def compile_delete_one(self, collection: str, query: CompiledFilter) -> str:
        statement = self._for_filter(collection, query)
        return f"{statement} LIMIT 1 REMOVE {self.variable} IN @@collection RETURN OLD._key"


def build_query(collection: str, query: CompiledFilter, limit: Optional[int] = None) -> Tuple[str, Dict[str, Any]]:
    """Compile a find statement and return it with its bind variables."""
    builder = AQLBuilder()
    aql = builder.compile_query(collection, query, limit)
    return aql, builder.bind_vars
