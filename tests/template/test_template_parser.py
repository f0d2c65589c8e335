"""
Тесты для парсера шаблонов.
"""

import pytest

from pcache.template import (
    CacheBlockNode,
    ConditionalNode,
    ExpressionNode,
    LoopNode,
    ParserError,
    TextNode,
    UncachedBlockNode,
    format_ast_tree,
    parse_template,
)


class TestTemplateParser:

    def test_text_and_variables(self):
        ast = parse_template("Hello $Name!")
        assert ast[0] == TextNode(text="Hello ")
        assert isinstance(ast[1], ExpressionNode)
        assert str(ast[1].expr) == "$Name"
        assert ast[2] == TextNode(text="!")

    def test_adjacent_text_is_merged(self):
        """Текст по обе стороны комментария сливается в один узел"""
        assert parse_template("a<%-- c --%>b") == (TextNode(text="ab"),)

    def test_cached_block(self):
        ast = parse_template("<% cached $A, 'nav' if $A > 0 %>X$A<% end_cached %>")
        block = ast[0]
        assert isinstance(block, CacheBlockNode)
        assert [str(k) for k in block.key_exprs] == ["$A", "'nav'"]
        assert str(block.condition) == "$A > 0"
        assert block.negated is False
        assert block.source == "X$A"
        assert (block.location.line, block.location.column) == (1, 1)

    def test_cacheblock_alias_and_unless(self):
        ast = parse_template("<% cacheblock unless $CurrentUser %>X<% end_cacheblock %>")
        block = ast[0]
        assert isinstance(block, CacheBlockNode)
        assert block.key_exprs == ()
        assert block.negated is True

    def test_source_of_nested_block_includes_inner_tags(self):
        """Исходный текст блока включает вложенные директивы"""
        text = "<% cached $P %>H<% cached $B %>M<% end_cached %>F<% end_cached %>"
        outer = parse_template(text)[0]
        assert outer.source == "H<% cached $B %>M<% end_cached %>F"
        inner = outer.body[1]
        assert isinstance(inner, CacheBlockNode)
        assert inner.source == "M"

    def test_uncached_ignores_arguments(self):
        ast = parse_template("<% uncached $Whatever %>U<% end_uncached %>")
        assert isinstance(ast[0], UncachedBlockNode)
        assert ast[0].body == (TextNode(text="U"),)

    def test_if_else_chain(self):
        ast = parse_template("<% if $A %>a<% else_if $B %>b<% else %>c<% end_if %>")
        node = ast[0]
        assert isinstance(node, ConditionalNode)
        assert [str(b.condition) for b in node.branches] == ["$A", "$B"]
        assert node.branches[1].body == (TextNode(text="b"),)
        assert node.else_body == (TextNode(text="c"),)

    def test_loop(self):
        ast = parse_template("<% loop $Items %>[$Title]<% end_loop %>")
        node = ast[0]
        assert isinstance(node, LoopNode)
        assert str(node.path) == "$Items"
        assert len(node.body) == 3

    def test_parser_does_not_reject_cached_in_loop(self):
        """Проверка вложенности - задача компилятора, а не парсера"""
        ast = parse_template("<% loop $Items %><% cached $X %>Y<% end_cached %><% end_loop %>")
        assert isinstance(ast[0].body[0], CacheBlockNode)

    @pytest.mark.parametrize("text, message", [
        ("<% frobnicate %>", "Unknown directive 'frobnicate'"),
        ("<% if $A %>x", "Unclosed 'if' block"),
        ("<% if $A %>x<% end_loop %>", "Unexpected 'end_loop'"),
        ("x<% end_cached %>", "Unexpected 'end_cached'"),
        ("<% else %>", "'else' without matching 'if'"),
        ("<% if $A %><% else %><% else %><% end_if %>", "Multiple 'else'"),
        ("<% if $A %><% else %><% else_if $B %><% end_if %>", "'else_if' after 'else'"),
        ("<% if %><% end_if %>", "'if' requires a condition"),
        ("<% loop %><% end_loop %>", "'loop' requires a list expression"),
        ("<% cached $A $B %><% end_cached %>", "Invalid expression"),
        ("<% if $A && %>x<% end_if %>", "Invalid expression"),
    ])
    def test_errors(self, text, message):
        with pytest.raises(ParserError) as exc:
            parse_template(text, "page.ss")
        assert message in str(exc.value)
        assert "page.ss:" in str(exc.value)

    def test_error_location(self):
        with pytest.raises(ParserError) as exc:
            parse_template("line\n  <% bogus %>")
        assert (exc.value.line, exc.value.column) == (2, 3)

    def test_format_ast_tree(self):
        ast = parse_template("<% cached $A unless $B %>x<% uncached %>y<% end_uncached %><% end_cached %>")
        tree = format_ast_tree(ast)
        assert "Cached($A unless $B)" in tree
        assert "  Uncached" in tree
