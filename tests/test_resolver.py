"""Scope resolver tests: scopes, roles, identifier kinds, namespaces."""

from __future__ import annotations

from qlang.lexer import tokenize
from qlang.resolver import is_local, match_brackets, qualify
from qlang.tokens import IdentifierKind, Role, TokenType

from .conftest import index_of


class TestScopes:
    def test_top_level_has_no_scope(self, analyze):
        tokens = analyze("a:1")
        assert all(t.scope is None for t in tokens)

    def test_implicit_argument(self, analyze):
        tokens = analyze("{x+1}")
        x = tokens[index_of(tokens, "x")]
        assert x.kind is IdentifierKind.ARGUMENT
        assert x.scope == 0
        assert tokens[0].lambda_ is not None
        assert tokens[0].lambda_.nullary

    def test_braces_belong_to_outer_and_inner_scope(self, analyze):
        tokens = analyze("{x}")
        assert tokens[0].scope is None
        assert tokens[2].scope == 0

    def test_nested_lambdas(self, analyze):
        tokens = analyze("{{x}}")
        assert tokens[1].scope == 0
        assert tokens[2].scope == 1
        assert tokens[3].scope == 1
        assert tokens[4].scope == 0

    def test_unclosed_lambda_extends_to_end(self, analyze):
        tokens = analyze("{a:1;\nb")
        b = tokens[index_of(tokens, "b")]
        assert b.scope == 0

    def test_stray_closer_ignored(self, analyze):
        tokens = analyze("}a")
        assert tokens[1].scope is None

    def test_scope_ends_after_lambda(self, analyze):
        tokens = analyze("{x};y")
        assert tokens[index_of(tokens, "y")].scope is None


class TestParameters:
    def test_declared_parameters(self, analyze):
        tokens = analyze("{[a;b]a+b}")
        marker = tokens[0].lambda_
        assert marker is not None
        assert not marker.nullary
        assert [tokens[i].raw for i in marker.params] == ["a", "b"]
        for i in marker.params:
            assert tokens[i].role is Role.ASSIGNMENT
            assert tokens[i].kind is IdentifierKind.ARGUMENT

    def test_declared_list_hides_implicit_x(self, analyze):
        tokens = analyze("{[a]a+x}")
        x = tokens[index_of(tokens, "x")]
        assert x.kind is IdentifierKind.GLOBAL

    def test_empty_parameter_list(self, analyze):
        tokens = analyze("{[]x}")
        assert not tokens[0].lambda_.nullary
        assert tokens[0].lambda_.params == ()

    def test_implicit_argument_reassigned_stays_argument(self, analyze):
        tokens = analyze("{x:1;x}")
        for i, tok in enumerate(tokens):
            if tok.raw == "x":
                assert tok.kind is IdentifierKind.ARGUMENT, i

    def test_parameter_reassigned_stays_argument(self, analyze):
        tokens = analyze("{[a]a:1}")
        assert tokens[index_of(tokens, "a", 1)].kind is IdentifierKind.ARGUMENT


class TestRoles:
    def test_assignment_and_reference(self, analyze):
        tokens = analyze("a:b")
        assert tokens[0].role is Role.ASSIGNMENT
        assert tokens[2].role is Role.REFERENCE

    def test_indexed_amend_target(self, analyze):
        tokens = analyze("a[1]:2")
        assert tokens[0].role is Role.ASSIGNMENT
        assert tokens[2].role is Role.REFERENCE

    def test_compound_assign_target(self, analyze):
        tokens = analyze("a+:1")
        assert tokens[0].role is Role.ASSIGNMENT

    def test_literal_target(self, analyze):
        tokens = analyze("1:2")
        assert tokens[0].type == TokenType.OPERATOR

    def test_literal_assignment_is_unassignable(self, analyze):
        tokens = analyze("100:1")
        assert tokens[0].role is Role.ASSIGNMENT
        assert tokens[0].kind is IdentifierKind.UNASSIGNABLE

    def test_keyword_is_unassignable(self, analyze):
        tokens = analyze("count x")
        assert tokens[0].identifier == "count"
        assert tokens[0].kind is IdentifierKind.UNASSIGNABLE

    def test_defines(self, analyze):
        tokens = analyze("f:{x}")
        assert tokens[0].defines == 2
        assert tokens[2].type == TokenType.LBRACE

    def test_defines_with_space(self, analyze):
        tokens = analyze("f: {x}")
        assert tokens[0].defines == index_of(tokens, "{")

    def test_non_lambda_value(self, analyze):
        tokens = analyze("f:1")
        assert tokens[0].defines is None


class TestKinds:
    def test_local(self, analyze):
        tokens = analyze("{a:1;a}")
        first = tokens[index_of(tokens, "a")]
        second = tokens[index_of(tokens, "a", 1)]
        assert first.kind is IdentifierKind.LOCAL
        assert second.kind is IdentifierKind.LOCAL
        assert first.identifier == "a"

    def test_global_read_in_lambda(self, analyze):
        tokens = analyze("{a+1}")
        assert tokens[index_of(tokens, "a")].kind is IdentifierKind.GLOBAL

    def test_double_colon_assigns_global(self, analyze):
        tokens = analyze("{a::1}")
        a = tokens[index_of(tokens, "a")]
        assert a.kind is IdentifierKind.GLOBAL
        assert a.scope is None

    def test_double_colon_on_local_stays_local(self, analyze):
        tokens = analyze("{a:1;a::2}")
        a = tokens[index_of(tokens, "a", 1)]
        assert a.kind is IdentifierKind.LOCAL
        assert a.scope == 0

    def test_double_colon_on_argument(self, analyze):
        tokens = analyze("{x::1}")
        x = tokens[index_of(tokens, "x")]
        assert x.kind is IdentifierKind.ARGUMENT
        assert x.scope == 0

    def test_local_does_not_leak_to_sibling(self, analyze):
        tokens = analyze("{a:1;a};{a}")
        assert tokens[index_of(tokens, "a", 2)].kind is IdentifierKind.GLOBAL

    def test_local_not_visible_in_nested_lambda(self, analyze):
        tokens = analyze("{a:1;{a}}")
        assert tokens[index_of(tokens, "a", 1)].kind is IdentifierKind.GLOBAL


class TestNamespaces:
    def test_global_qualified(self, analyze):
        tokens = analyze("\\d .ns\nf:{a:1;a}\ng")
        f = tokens[index_of(tokens, "f")]
        g = tokens[index_of(tokens, "g")]
        a = tokens[index_of(tokens, "a")]
        assert f.identifier == ".ns.f"
        assert g.identifier == ".ns.g"
        assert a.identifier == "a"

    def test_dotted_name_not_requalified(self, analyze):
        tokens = analyze("\\d .ns\n.q.x:1")
        assert tokens[-3].identifier == ".q.x"

    def test_root_global(self, analyze):
        tokens = analyze("a:1")
        assert tokens[0].identifier == "a"

    def test_qualify(self):
        assert qualify("a", None) == "a"
        assert qualify("a", ".ns") == ".ns.a"
        assert qualify(".x.a", ".ns") == ".x.a"


class TestIsLocal:
    def test_top_level_is_not_local(self, analyze):
        tokens = analyze("a:1;a")
        assert not is_local(tokens, tokens[4])

    def test_assigned_in_scope(self, analyze):
        tokens = analyze("{a:1;a}")
        assert is_local(tokens, tokens[index_of(tokens, "a", 1)])

    def test_implicit_argument(self, analyze):
        tokens = analyze("{x}")
        assert is_local(tokens, tokens[1])

    def test_global_read_in_lambda(self, analyze):
        tokens = analyze("{[y]x}")
        assert not is_local(tokens, tokens[index_of(tokens, "x")])


class TestInputUntouched:
    def test_resolver_returns_new_list(self):
        from qlang.resolver import resolve

        tokens = tokenize("{x}")
        resolved = resolve(tokens)
        assert resolved is not tokens
        assert tokens[1].kind is None
        assert resolved[1].kind is IdentifierKind.ARGUMENT


class TestMatchBrackets:
    def test_pairs(self):
        tokens = tokenize("([{}])")
        pairs = match_brackets(tokens)
        assert pairs[0] == 5
        assert pairs[5] == 0
        assert pairs[2] == 3

    def test_unmatched_left_out(self):
        tokens = tokenize("(]")
        assert match_brackets(tokens) == {}
