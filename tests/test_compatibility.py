"""Tests for structural type compatibility."""

import pytest

from typebench.compatibility import (
    PropertyType,
    array_element_type,
    basic_types_compatible,
    is_array_type,
    is_compatible,
    is_object_type,
    is_union_type,
    parse_object_type,
    split_union,
    unwrap_parens,
)


class TestIsCompatible:
    """Properties of is_compatible(predicted, ground_truth)."""

    @pytest.mark.parametrize(
        "type_string",
        ["string", "number[]", "{ a: number }", "string | null", "Promise<void>", "Foo<Bar>"],
    )
    def test_reflexive(self, type_string: str) -> None:
        assert is_compatible(type_string, type_string)

    @pytest.mark.parametrize("other", ["number", "string[]", "{ a: number }", "Foo"])
    def test_any_is_wildcard_on_both_sides(self, other: str) -> None:
        assert is_compatible("any", other)
        assert is_compatible(other, "any")

    def test_unknown_only_absorbs_as_prediction(self) -> None:
        assert is_compatible("unknown", "string")
        assert not is_compatible("string", "unknown")

    def test_formatting_differences_ignored(self) -> None:
        assert is_compatible("String", "string")
        assert is_compatible("string[]", "Array<string>")
        assert is_compatible("{a:number;b:string}", "{ a: number, b: string }")

    def test_width_subtyping(self) -> None:
        assert is_compatible("{ a: number, b: string }", "{ a: number }")

    def test_missing_required_member(self) -> None:
        assert not is_compatible("{ a: number }", "{ a: number, b: string }")

    def test_optional_member_may_be_absent(self) -> None:
        assert is_compatible("{ a: number }", "{ a: number, b?: string }")

    def test_optional_member_type_still_checked(self) -> None:
        assert not is_compatible("{ a: number, b: boolean }", "{ a: number, b?: string }")

    def test_member_order_irrelevant(self) -> None:
        assert is_compatible("{ b: string, a: number }", "{ a: number, b: string }")

    def test_nested_objects(self) -> None:
        assert is_compatible("{ user: { id: number, name: string } }", "{ user: { id: number } }")
        assert not is_compatible("{ user: { name: string } }", "{ user: { id: number } }")

    def test_member_type_mismatch(self) -> None:
        assert not is_compatible("{ a: string }", "{ a: number }")

    def test_union_satisfied_by_any_member(self) -> None:
        assert is_compatible("string", "string | number")
        assert is_compatible("number", "string | number")
        assert not is_compatible("boolean", "string | number")

    def test_union_member_with_object(self) -> None:
        assert is_compatible("{ id: number, extra: string }", "{ id: number } | null")

    def test_array_element_recursion(self) -> None:
        assert is_compatible("Array<any>", "number[]")
        assert not is_compatible("string[]", "number[]")

    def test_array_of_union(self) -> None:
        assert is_compatible("string[]", "Array<string | number>")
        assert is_compatible("(string | number)[]", "Array<string | number>")

    def test_array_of_objects(self) -> None:
        assert is_compatible("{ a: number, b: string }[]", "Array<{ a: number }>")

    def test_promise_payload_ignored(self) -> None:
        assert is_compatible("Promise<string>", "Promise<number>")

    def test_distinct_basic_types(self) -> None:
        assert not is_compatible("string", "number")

    def test_unclassifiable_falls_back_to_string_equality(self) -> None:
        assert is_compatible("Map<string, number>", "map<string,number>")
        assert not is_compatible("Map<string, number>", "Map<string, string>")

    def test_deeply_nested_objects_do_not_raise(self) -> None:
        deep = "{ a: " * 500 + "string" + " }" * 500
        wider = "{ z: number, a: " + deep + " }"
        assert is_compatible(deep, deep)
        assert isinstance(is_compatible(wider, "{ a: " + deep + " }"), bool)
        assert not is_compatible(deep, "string")


class TestParseObjectType:
    """Tests for parse_object_type."""

    def test_parses_members(self) -> None:
        props = parse_object_type("{ name: string; age?: number }")
        assert props == {
            "name": PropertyType("string", False),
            "age": PropertyType("number", True),
        }

    def test_skips_entries_without_colon(self) -> None:
        assert parse_object_type("{a:number,junk,b:string}") == {
            "a": PropertyType("number"),
            "b": PropertyType("string"),
        }

    def test_nested_member_type_kept_whole(self) -> None:
        props = parse_object_type("{user:{id:number,name:string}}")
        assert props["user"].type == "{id:number,name:string}"

    def test_function_member(self) -> None:
        props = parse_object_type("{cb:(a:number,b:string)=>void,x:number}")
        assert props["cb"].type == "(a:number,b:string)=>void"
        assert props["x"].type == "number"


class TestHelpers:
    """Tests for the classification helpers."""

    def test_is_object_type(self) -> None:
        assert is_object_type("{a:number}")
        assert not is_object_type("{a:number}|{b:string}")
        assert not is_object_type("object")

    def test_is_union_type(self) -> None:
        assert is_union_type("string|number")
        assert not is_union_type("(string|number)array")

    def test_split_union(self) -> None:
        assert split_union("string | { a: number | null }") == ["string", "{ a: number | null }"]
        assert split_union("(a | b)") == ["a", "b"]

    def test_array_helpers(self) -> None:
        assert is_array_type("stringarray")
        assert array_element_type("stringarray") == "string"

    def test_unwrap_parens(self) -> None:
        assert unwrap_parens("((string))") == "string"
        assert unwrap_parens("(a)|(b)") == "(a)|(b)"

    def test_basic_types_compatible(self) -> None:
        assert basic_types_compatible("any", "number")
        assert basic_types_compatible("unknown", "number")
        assert not basic_types_compatible("number", "unknown")
