"""
Тесты рендеринга узлов и эквивалентности развернутого и прямого рендера.
"""

import pytest

from pcache.compiler import CacheKeyComposer, flatten_template
from pcache.render import NodeRenderer, RenderDispatcher, RenderPass
from pcache.template import parse_template

from tests.infrastructure import CountingStore


def _direct(text, data):
    return NodeRenderer(RenderPass(data)).render(parse_template(text))


class TestNodeRenderer:

    def test_loop_with_helpers(self):
        text = "<% loop $Items %>$Pos:$Title<% if not $Last %>, <% end_if %><% end_loop %>"
        out = _direct(text, {"Items": [{"Title": "a"}, {"Title": "b"}, {"Title": "c"}]})
        assert out == "1:a, 2:b, 3:c"

    def test_loop_over_nothing(self):
        assert _direct("[<% loop $Items %>x<% end_loop %>]", {"Items": []}) == "[]"
        assert _direct("[<% loop $Missing %>x<% end_loop %>]", {}) == "[]"

    def test_loop_over_single_object(self):
        assert _direct("<% loop $Page %>$Title<% end_loop %>", {"Page": {"Title": "T"}}) == "T"

    def test_loop_over_strings_falls_back_to_outer_scope(self):
        """У строкового элемента нет полей: $title ищется во внешней области"""
        text = "<% loop $Tags %>[$title]<% end_loop %>"
        assert _direct(text, {"Tags": ["a", "b"]}) == "[][]"
        assert _direct(text, {"Tags": ["a"], "title": "T"}) == "[T]"

    def test_loop_up_reference(self):
        text = "<% loop $Items %>$Up.Prefix$Name <% end_loop %>"
        out = _direct(text, {"Prefix": "#", "Items": [{"Name": "a"}, {"Name": "b"}]})
        assert out == "#a #b "

    def test_if_chain(self):
        text = "<% if $N > 10 %>big<% else_if $N > 0 %>small<% else %>none<% end_if %>"
        assert _direct(text, {"N": 11}) == "big"
        assert _direct(text, {"N": 3}) == "small"
        assert _direct(text, {"N": 0}) == "none"
        assert _direct(text, {}) == "none"

    def test_values_formatting(self):
        assert _direct("$T/$F/$None/$Num", {"T": True, "F": False, "None": None, "Num": 2.0}) == "1/0//2"

    def test_cache_wrappers_are_transparent(self):
        text = "<% cached $A %>a<% uncached %>u<% end_uncached %>b<% end_cached %>"
        assert _direct(text, {"A": 1}) == "aub"

    def test_braced_variable_and_escape(self):
        assert _direct("{$Name}s cost \\$5 and \\$Price", {"Name": "Apple"}) == "Apples cost $5 and $Price"


TEMPLATES = [
    "plain",
    "<% cached $A %>X$A<% end_cached %>",
    "0<% cached $P %>H$P<% cached $B %>M$B<% uncached %>U$A<% end_uncached %>N<% end_cached %>F<% end_cached %>1",
    "<% cached $A if $A > 1 %><% loop $Items %>[$Title]<% end_loop %><% end_cached %>",
    "<% cached unless $A %><% if $B %>b<% else %>nb<% end_if %><% end_cached %>tail",
    "<% uncached %>u<% end_uncached %><% cached %><% end_cached %>end",
]

DATA = [
    {"A": 1, "B": 0, "P": "p", "Items": []},
    {"A": 2, "B": "x", "P": "", "Items": [{"Title": "t1"}, {"Title": "t2"}]},
]


class TestFlattenEquivalence:

    @pytest.mark.parametrize("text", TEMPLATES)
    @pytest.mark.parametrize("data", DATA)
    def test_flattened_render_equals_direct_render(self, text, data):
        """Развернутые регионы без кэша дают тот же текст, что и прямой рендер"""
        regions = flatten_template(parse_template(text))
        dispatcher = RenderDispatcher(CountingStore(), CacheKeyComposer(), enabled=False)
        assert dispatcher.render(regions, RenderPass(data)) == _direct(text, data)

    @pytest.mark.parametrize("text", TEMPLATES)
    def test_cached_render_equals_direct_render(self, text):
        """С кэшем (промах, затем попадание) вывод тот же при неизменных данных"""
        regions = flatten_template(parse_template(text))
        dispatcher = RenderDispatcher(CountingStore(), CacheKeyComposer())
        data = DATA[1]
        first = dispatcher.render(regions, RenderPass(data))
        second = dispatcher.render(regions, RenderPass(data))
        assert first == second == _direct(text, data)
