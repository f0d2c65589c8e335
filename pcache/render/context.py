"""
Проход рендеринга: данные, глобальные значения шаблона, стек областей
видимости и мемоизация вычисленных путей.

Один RenderPass создается на каждый рендер и отбрасывается после него,
поэтому мемо не переживает проход и не разделяется между потоками.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Tuple

from ..expressions.evaluator import MISSING, ExpressionEvaluator, is_truthy, lookup_member
from ..expressions.model import Expression, PathExpression
from ..template.nodes import TemplateAST

logger = logging.getLogger(__name__)

# Служебные имена, меняющие область поиска
UP = "Up"
TOP = "Top"


@dataclass(frozen=True)
class LoopInfo:
    """Позиция элемента в текущем цикле (index с нуля)."""
    index: int
    total: int

    def helper(self, name: str, args: Tuple[Any, ...] = ()) -> Any:
        """Значение служебного поля цикла или MISSING."""
        pos = self.index + 1
        if name == "Pos":
            start = int(args[0]) if args else 1
            return self.index + start
        if name == "First":
            return self.index == 0
        if name == "Last":
            return self.index == self.total - 1
        if name == "Middle":
            return 0 < self.index < self.total - 1
        if name == "Even":
            return pos % 2 == 0
        if name == "Odd":
            return pos % 2 == 1
        if name == "TotalItems":
            return self.total
        return MISSING


@dataclass(frozen=True)
class Scope:
    """Одна область видимости: текущий объект и его уникальный токен в проходе."""
    item: Any
    token: int
    loop: Optional[LoopInfo] = None


@dataclass
class RenderStats:
    """Счетчики одного прохода рендеринга."""
    regions: int = 0
    hits: int = 0
    misses: int = 0
    writes: int = 0
    bypassed: int = 0
    store_errors: int = 0


class RenderPass:
    """
    Состояние одного прохода рендеринга.

    Разрешает пути выражений по цепочке областей видимости:
      1. Up / Top переводят поиск в родительскую / корневую область
      2. служебные поля цикла (Pos, First, Last, Middle, Even, Odd, TotalItems)
      3. текущая область, затем объемлющие области наружу
      4. глобальные значения шаблона (CurrentReadingMode, CurrentUser, ...)

    Найденные значения запоминаются по (токен области, каноническая строка пути),
    поэтому одно и то же выражение в одной позиции данных вычисляется один раз
    за проход, даже если на него ссылаются несколько регионов.
    """

    def __init__(
        self,
        data: Any = None,
        globals: Optional[Dict[str, Any]] = None,
        global_key_ast: TemplateAST = (),
    ):
        self.globals: Dict[str, Any] = dict(globals or {})
        self.stats = RenderStats()

        self._next_token = 0
        self._scopes: List[Scope] = [self._new_scope({} if data is None else data)]
        self._memo: Dict[Tuple[int, str], Any] = {}
        self._global_key_ast = global_key_ast
        self._global_key: Optional[str] = None

        self.strict = ExpressionEvaluator(self, strict=True)
        self.lenient = ExpressionEvaluator(self, strict=False)

    # --------------------------- Scopes --------------------------- #

    @property
    def scope(self) -> Scope:
        return self._scopes[-1]

    @contextmanager
    def push_scope(self, item: Any, loop: Optional[LoopInfo] = None) -> Iterator[Scope]:
        """Делает item текущей областью видимости на время блока with."""
        scope = self._new_scope(item, loop)
        self._scopes.append(scope)
        try:
            yield scope
        finally:
            self._scopes.pop()

    def _new_scope(self, item: Any, loop: Optional[LoopInfo] = None) -> Scope:
        token = self._next_token
        self._next_token += 1
        return Scope(item=item, token=token, loop=loop)

    # --------------------------- Evaluation --------------------------- #

    def evaluate(self, expression: Expression, *, strict: bool = False) -> Any:
        return (self.strict if strict else self.lenient).evaluate(expression)

    def evaluate_bool(self, expression: Expression, *, strict: bool = False) -> bool:
        return is_truthy(self.evaluate(expression, strict=strict))

    def global_key(self, render_nodes) -> str:
        """
        Глобальный ключ прохода, вычисляется один раз.

        Args:
            render_nodes: Функция рендеринга узлов (NodeRenderer.render)
        """
        if self._global_key is None:
            self._global_key = render_nodes(self._global_key_ast)
            logger.debug(f"Global key for render pass: {self._global_key!r}")
        return self._global_key

    # --------------------------- PathResolver --------------------------- #

    def resolve(self, path: PathExpression, evaluator: ExpressionEvaluator) -> Any:
        memo_key = (self.scope.token, str(path))
        if memo_key in self._memo:
            return self._memo[memo_key]

        value, missing_name = self._lookup(path, evaluator)
        if value is MISSING:
            # отсутствие не запоминаем: строгий и нестрогий режимы реагируют по-разному
            return evaluator.missing(path, missing_name)

        self._memo[memo_key] = value
        return value

    def _lookup(self, path: PathExpression, evaluator: ExpressionEvaluator) -> Tuple[Any, str]:
        segments = list(path.segments)
        depth = len(self._scopes) - 1
        explicit_scope = False

        while segments and segments[0].name in (UP, TOP) and not segments[0].called:
            depth = max(depth - 1, 0) if segments[0].name == UP else 0
            explicit_scope = True
            segments.pop(0)

        if not segments:
            return self._scopes[depth].item, ""

        head, rest = segments[0], segments[1:]
        args = tuple(evaluator.evaluate(a) for a in head.args)
        value = self._lookup_head(head.name, args, head.called, depth, explicit_scope)

        if value is MISSING:
            return MISSING, head.name

        for segment in rest:
            seg_args = tuple(evaluator.evaluate(a) for a in segment.args)
            value = lookup_member(value, segment.name, seg_args, segment.called)
            if value is MISSING:
                return MISSING, segment.name

        return value, ""

    def _lookup_head(self, name: str, args: Tuple[Any, ...], called: bool, depth: int, explicit_scope: bool) -> Any:
        scope = self._scopes[depth]
        if scope.loop is not None:
            helper = scope.loop.helper(name, args)
            if helper is not MISSING:
                return helper

        # Up/Top фиксируют область, иначе поиск идет наружу по цепочке
        candidates = [scope] if explicit_scope else reversed(self._scopes[: depth + 1])
        for candidate in candidates:
            value = lookup_member(candidate.item, name, args, called)
            if value is not MISSING:
                return value

        if name in self.globals:
            return lookup_member(self.globals, name, args, called)
        return MISSING


__all__ = ["RenderPass", "RenderStats", "Scope", "LoopInfo"]
