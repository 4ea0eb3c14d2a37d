"""
Unit tests for path resolution and filter/update casting.
"""
import pytest

from arangomap.errors import CastError, InvalidMapKeyError
from arangomap.query.cast import cast_filter, cast_update
from arangomap.query.operations import CompiledFilter, FilterCondition, QueryOperator, UpdateOperator
from arangomap.query.resolver import resolve_path
from arangomap.schema import Field, FieldKind, Map, Number, Schema, String


@pytest.fixture
def schema():
    return Schema({
        "n": Number,
        "v": Field(Map, of=Number),
        "m": Field(Map, of=Schema({"n": Number})),
        "tags": [String],
    })


@pytest.fixture
def department():
    schema = Schema({"employees": [Schema({"name": String})]})
    path = schema.path("employees")
    path.discriminator("Sales", Schema({"clients": [String]}))
    path.discriminator("Engineering", Schema({"apiKeys": Field(Map, of=String)}))
    return schema


class TestResolvePath:
    """Tests for resolve_path."""

    def test_scalar_and_map_entries(self, schema):
        assert resolve_path([schema], "n").spec.caster.name == "Number"
        resolved = resolve_path([schema], "v.anything")
        assert resolved.spec.kind is FieldKind.SCALAR
        assert resolved.spec.caster.name == "Number"
        assert resolved.array_paths == []

    def test_embedded_map_values(self, schema):
        assert resolve_path([schema], "m.bacon").spec.kind is FieldKind.EMBEDDED
        assert resolve_path([schema], "m.bacon.n").spec.caster.name == "Number"
        assert resolve_path([schema], "m.bacon.zzz").spec is None

    def test_special_paths(self, schema):
        assert resolve_path([schema], "_key").spec.caster.name == "Key"
        assert resolve_path([schema], "__t").spec.caster.name == "String"

    def test_arrays_fan_out_through_variants(self, department):
        resolved = resolve_path([department], "employees.apiKeys.github")
        assert resolved.spec.caster.name == "String"
        assert resolved.array_paths == ["employees"]

        positional = resolve_path([department], "employees.1.name")
        assert positional.spec.caster.name == "String"
        assert positional.array_paths == []

    def test_unknown_paths_keep_array_prefixes(self, department):
        resolved = resolve_path([department], "employees.salary")
        assert resolved.spec is None
        assert resolved.array_paths == ["employees"]


class TestCastFilter:
    """Tests for cast_filter."""

    def test_dotted_and_nested_forms_are_equivalent(self, schema):
        dotted = cast_filter([schema], {"v.n": "1"})
        nested = cast_filter([schema], {"v": {"n": "1"}})
        assert dotted == nested
        assert dotted.conditions == [FilterCondition(path="v.n", value=1)]

    def test_nested_embedded_values_are_flattened(self, schema):
        compiled = cast_filter([schema], {"m": {"bacon": {"n": "2"}}})
        assert compiled.conditions == [FilterCondition(path="m.bacon.n", value=2)]

    def test_operators(self, schema):
        compiled = cast_filter([schema], {"n": {"$gte": "2", "$lt": 5}, "v.x": {"$in": ["1", 2]}})
        operators = [(c.path, c.operator, c.value) for c in compiled.conditions]
        assert operators == [
            ("n", QueryOperator.GREATER_EQUAL, 2),
            ("n", QueryOperator.LESS_THAN, 5),
            ("v.x", QueryOperator.IN, [1, 2]),
        ]

    def test_exists_is_boolean(self, schema):
        compiled = cast_filter([schema], {"v.x": {"$exists": "true"}})
        assert compiled.conditions[0].value is True

    def test_array_element_matching(self, schema):
        compiled = cast_filter([schema], {"tags": 5})
        condition = compiled.conditions[0]
        assert condition.value == "5"
        assert condition.array_paths == ["tags"]

        whole = cast_filter([schema], {"tags": ["a", 1]}).conditions[0]
        assert whole.value == ["a", "1"]
        assert whole.array_paths == []

    def test_logical_operators(self, schema):
        compiled = cast_filter([schema], {"$or": [{"n": "1"}, {"v": {"x": "2"}}]})
        nested = compiled.conditions[0]
        assert isinstance(nested, CompiledFilter)
        assert nested.combine_operator == "OR"
        assert nested.conditions[1].conditions == [FilterCondition(path="v.x", value=2)]

    def test_cast_failure_names_dotted_path(self, schema):
        with pytest.raises(CastError) as excinfo:
            cast_filter([schema], {"v": {"n": "not a number"}})
        assert excinfo.value.path == "v.n"
        assert excinfo.value.name == "CastError"

    def test_unsupported_operators(self, schema):
        with pytest.raises(CastError):
            cast_filter([schema], {"n": {"$regex": "x"}})
        with pytest.raises(CastError):
            cast_filter([schema], {"$where": "x"})
        with pytest.raises(CastError):
            cast_filter([schema], {"v.x": {"$in": 1}})

    def test_unknown_paths_pass_through(self, schema):
        compiled = cast_filter([schema], {"other": {"a": 1}})
        assert compiled.conditions == [FilterCondition(path="other", value={"a": 1})]

    def test_variant_paths(self, department):
        compiled = cast_filter([department], {"employees.apiKeys.github": "test3"})
        condition = compiled.conditions[0]
        assert condition.path == "employees.apiKeys.github"
        assert condition.array_paths == ["employees"]

    def test_equality_values(self, schema):
        compiled = cast_filter([schema], {"n": "1", "v.x": {"$gt": 1}, "tags": "a"})
        assert compiled.equality_values() == {"n": 1}


class TestCastUpdate:
    """Tests for cast_update."""

    def test_bare_paths_are_set(self, schema):
        compiled = cast_update([schema], {"v.n": "3"})
        op = compiled.operations[0]
        assert (op.operator, op.path, op.value) == (UpdateOperator.SET, "v.n", 3)

    def test_operators(self, schema):
        compiled = cast_update([schema], {
            "$set": {"n": "1", "m": {"bacon": {"n": "2"}}},
            "$unset": {"v.x": ""},
            "$setOnInsert": {"tags": "a"},
        })
        assert [(op.operator, op.path, op.value) for op in compiled.operations] == [
            (UpdateOperator.SET, "n", 1),
            (UpdateOperator.SET, "m.bacon.n", 2),
            (UpdateOperator.UNSET, "v.x", None),
            (UpdateOperator.SET_ON_INSERT, "tags", ["a"]),
        ]
        assert compiled.paths(include_on_insert=False) == ["n", "m.bacon.n", "v.x"]

    def test_dotted_and_nested_forms_are_equivalent(self, schema):
        dotted = cast_update([schema], {"v.n": "3", "v.k": 9})
        nested = cast_update([schema], {"v": {"n": "3", "k": 9}})
        assert dotted == nested
        assert [(op.path, op.value) for op in nested.operations] == [("v.n", 3), ("v.k", 9)]

    def test_empty_object_replaces_map(self, schema):
        compiled = cast_update([schema], {"v": {}})
        assert [(op.path, op.value) for op in compiled.operations] == [("v", {})]

    def test_invalid_map_keys_are_rejected(self, schema):
        with pytest.raises(InvalidMapKeyError):
            cast_update([schema], {"v": {"a.b": 1}})

    def test_cast_failure_aborts_whole_update(self, schema):
        with pytest.raises(CastError) as excinfo:
            cast_update([schema], {"n": 1, "v.n": "not a number"})
        assert excinfo.value.path == "v.n"

    def test_nested_map_failure_path(self, schema):
        with pytest.raises(CastError) as excinfo:
            cast_update([schema], {"$set": {"v": {"ok": 1, "bad": "x"}}})
        assert excinfo.value.path == "v.bad"

    def test_unsupported_operator(self, schema):
        with pytest.raises(CastError):
            cast_update([schema], {"$inc": {"n": 1}})
        with pytest.raises(CastError):
            cast_update([schema], {"$set": ["n", 1]})
