# src/dagflow/core/expression/evaluator.py
"""
Avaliador de expressões `${{ expr }}` do dagflow.

A configuração dos steps é texto livre: qualquer valor pode embutir
fragmentos `${{ ... }}` que são avaliados contra um conjunto de
bindings (a árvore de variáveis resolvida, o registro corrente etc.).

Linguagem (expressões Jinja2, compiladas num ambiente sandbox):
    - acesso por ponto em mapeamentos (`steps.reader.count`,
      `global.vars.region`, `steps.copy.config.from`) e índices (`rows.0`)
    - comparações, operadores lógicos/aritméticos, concatenação,
      pertinência (`in`), expressão condicional (`a if c else b`)
    - literais `true`, `false`, `none` e `null`
    - chamadas apenas para funções registradas (ver `functions.py`)
    - comparações "frouxas": uma string numérica é comparada como número
      quando o outro lado é numérico (`record.a == 1` com `a = "1"`)
    - atributos de objetos Python não são acessíveis; `**` e repetição
      de sequências têm limite de tamanho

Falhas:
    - `evaluate_expression` nunca levanta: devolve `Ok(value)` ou
      `Err("expression", context)`
    - um resultado nulo/indefinido é uma falha
    - `evaluate`/`resolve` encaminham falhas a um handler; o padrão
      (`raise_on_failure`) levanta `ExpressionError` citando a expressão,
      o template completo, linha e coluna
"""

from __future__ import annotations

import json
import operator
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from jinja2 import ChainableUndefined, TemplateSyntaxError, Undefined, nodes
from jinja2.environment import TemplateExpression
from jinja2.parser import Parser
from jinja2.sandbox import MAX_RANGE, SandboxedEnvironment
from jinja2.visitor import NodeTransformer, NodeVisitor

from dagflow.core.errors import EXPRESSION_INVALID, EXPRESSION_UNRESOLVED
from dagflow.core.exceptions import ExpressionError
from dagflow.core.result import EXPRESSION, Err, Ok, Result

from .functions import DEFAULT_FUNCTIONS


FRAGMENT_PATTERN = re.compile(r"\$\{\{(?P<expression>.*?)\}\}", re.DOTALL)

LITERALS: Dict[str, Any] = {"true": True, "false": False, "null": None}

# maior inteiro produzido por `**`, em bits
MAX_POWER_BITS = 100_000

COMPARE_FUNCTION = "_dagflow_compare"

FailureHandler = Callable[[Err], Any]


@dataclass(frozen=True)
class Fragment:
    wrapper: str
    expression: str
    start: int
    end: int
    line: int
    column: int


def raise_on_failure(error: Err) -> Any:
    """Handler padrão: transforma o `Err` em `ExpressionError`."""
    raise ExpressionError(message=error.message, details=dict(error.context))


def keep_unresolved(error: Err) -> None:
    """Handler leniente: mantém o fragmento original no template."""
    return None


def stringify(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, ensure_ascii=False, default=str)
    return str(value)


# ---------------------------------------------------------------------------
# Semântica dos operadores
# ---------------------------------------------------------------------------

def _defined(value: Any) -> Any:
    return None if isinstance(value, Undefined) else value


def _as_number(value: Any) -> Any:
    if isinstance(value, bool) or not isinstance(value, str):
        return value
    text = value.strip()
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return float(text)
    except ValueError:
        return value


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _coerce_pair(left: Any, right: Any):
    if _is_number(left) and isinstance(right, str):
        return left, _as_number(right)
    if _is_number(right) and isinstance(left, str):
        return _as_number(left), right
    return left, right


def _add(left: Any, right: Any) -> Any:
    if isinstance(left, str) and isinstance(right, str):
        return left + right
    if isinstance(left, str) or isinstance(right, str):
        a, b = _coerce_pair(left, right)
        if _is_number(a) and _is_number(b):
            return a + b
        return stringify(left) + stringify(right)
    return left + right


def _check_size(symbol: str, left: Any, right: Any) -> None:
    if symbol == "**" and _is_int(left) and _is_int(right) and abs(left) > 1 and right > 0:
        if abs(left).bit_length() * right > MAX_POWER_BITS:
            raise OverflowError(f"Result of {left} ** {right} is too large")
    if symbol == "*":
        for sequence, times in ((left, right), (right, left)):
            if isinstance(sequence, (str, list, tuple)) and _is_int(times) and len(sequence) * times > MAX_RANGE:
                raise OverflowError(f"Repetition result is longer than {MAX_RANGE} items")


_COMPARISONS: Dict[str, Callable[[Any, Any], bool]] = {
    "eq": operator.eq,
    "ne": operator.ne,
    "lt": operator.lt,
    "lteq": operator.le,
    "gt": operator.gt,
    "gteq": operator.ge,
}


def _compare_pair(op: str, left: Any, right: Any) -> bool:
    if op == "in":
        return right is not None and left in right
    if op == "notin":
        return right is None or left not in right
    left, right = _coerce_pair(left, right)
    fn = _COMPARISONS[op]
    if op in ("eq", "ne"):
        return fn(left, right)
    if left is None or right is None:
        return False
    return fn(left, right)


def compare(left: Any, *chain: Any) -> bool:
    """`a < b < c` chega aqui como `compare(a, "lt", b, "lt", c)`."""
    for op, right in zip(chain[::2], chain[1::2]):
        if not _compare_pair(op, left, right):
            return False
        left = right
    return True


# ---------------------------------------------------------------------------
# Ambiente Jinja2
# ---------------------------------------------------------------------------

class _LooseComparisons(NodeTransformer):
    """Troca cada `Compare` por uma chamada a `compare`."""

    def visit_Compare(self, node: nodes.Compare) -> nodes.Call:
        node = self.generic_visit(node)
        args: List[nodes.Expr] = [node.expr]
        for operand in node.ops:
            args.extend([nodes.Const(operand.op), operand.expr])
        call = nodes.Call(nodes.Name(COMPARE_FUNCTION, "load"), args, [], None, None)
        call.set_lineno(node.lineno)
        return call


class _CallCheck(NodeVisitor):
    def __init__(self, functions: Mapping[str, Any]):
        self.functions = functions

    def visit_Call(self, node: nodes.Call) -> None:
        if not isinstance(node.node, nodes.Name):
            raise TemplateSyntaxError("Only registered functions can be called", node.lineno)
        if node.node.name not in self.functions:
            raise TemplateSyntaxError(f"Unknown function: {node.node.name}", node.lineno)
        self.generic_visit(node)


class ExpressionEnvironment(SandboxedEnvironment):
    """
    Ambiente sandbox para expressões de configuração.

    - mapeamentos são lidos por chave (`record.items` é o campo `items`,
      nunca o método do dict); outros objetos não expõem atributos
    - operadores aritméticos são interceptados (números em string,
      `None` propagado, limites de tamanho)
    - argumentos indefinidos chegam às funções como `None`
    """

    intercepted_binops = frozenset(SandboxedEnvironment.default_binop_table)
    intercepted_unops = frozenset(SandboxedEnvironment.default_unop_table)

    def __init__(self, functions: Mapping[str, Callable[..., Any]]):
        super().__init__(undefined=ChainableUndefined, autoescape=False)
        self.functions = dict(functions)
        self.globals.clear()
        self.globals.update(LITERALS)
        self.globals.update(self.functions)
        self.globals[COMPARE_FUNCTION] = compare

    def parse_expression(self, source: str) -> nodes.Expr:
        parser = Parser(self, source, state="variable")
        expr = parser.parse_expression()
        if not parser.stream.eos:
            parser.fail("chunk after expression", parser.stream.current.lineno)
        return expr

    def compile_expression(self, source: str, undefined_to_none: bool = True) -> TemplateExpression:
        expr = self.parse_expression(source)
        _CallCheck(self.functions).visit(expr)
        expr = _LooseComparisons().visit(expr)
        expr.set_environment(self)
        body = [nodes.Assign(nodes.Name("result", "store"), expr, lineno=1)]
        template = self.from_string(nodes.Template(body, lineno=1))
        return TemplateExpression(template, undefined_to_none)

    def getattr(self, obj: Any, attribute: str) -> Any:
        if isinstance(obj, Mapping) and attribute in obj:
            return obj[attribute]
        return self.undefined(obj=obj, name=attribute)

    def getitem(self, obj: Any, argument: Any) -> Any:
        argument = _defined(argument)
        if isinstance(obj, Mapping):
            if argument in obj:
                return obj[argument]
        elif isinstance(obj, Sequence) and not isinstance(obj, bytes):
            if isinstance(argument, slice):
                return obj[argument]
            try:
                index = int(argument)
            except (TypeError, ValueError):
                index = None
            if index is not None and -len(obj) <= index < len(obj):
                return obj[index]
        return self.undefined(obj=obj, name=argument)

    def call(__self, __context, __obj, *args, **kwargs):  # noqa: N805
        args = tuple(_defined(arg) for arg in args)
        kwargs = {key: _defined(value) for key, value in kwargs.items()}
        return super().call(__context, __obj, *args, **kwargs)

    def call_binop(self, context, operator, left, right):
        left, right = _defined(left), _defined(right)
        if left is None or right is None:
            return None
        if operator == "+":
            return _add(left, right)
        left, right = _as_number(left), _as_number(right)
        _check_size(operator, left, right)
        return self.binop_table[operator](left, right)

    def call_unop(self, context, operator, arg):
        arg = _defined(arg)
        if arg is None:
            return None
        return self.unop_table[operator](_as_number(arg))


def _dotted_name(node: nodes.Node) -> Optional[str]:
    parts = []
    while isinstance(node, nodes.Getattr):
        parts.append(node.attr)
        node = node.node
    if not isinstance(node, nodes.Name):
        return None
    parts.append(node.name)
    return ".".join(reversed(parts))


class _NameCollector(NodeVisitor):
    def __init__(self, functions: set):
        self.functions = functions
        self.names: List[str] = []

    def _add(self, name: str) -> None:
        if name.split(".")[0] in LITERALS:
            return
        if name not in self.names:
            self.names.append(name)

    def visit_Call(self, node: nodes.Call) -> None:
        if not isinstance(node.node, nodes.Name) or node.node.name not in self.functions:
            self.visit(node.node)
        for arg in node.args:
            self.visit(arg)
        for keyword in node.kwargs:
            self.visit(keyword.value)

    def visit_Getattr(self, node: nodes.Getattr) -> None:
        dotted = _dotted_name(node)
        if dotted is None:
            self.generic_visit(node)
        else:
            self._add(dotted)

    def visit_Name(self, node: nodes.Name) -> None:
        self._add(node.name)


# ---------------------------------------------------------------------------
# Avaliador
# ---------------------------------------------------------------------------

class ExpressionEvaluator:
    def __init__(self, functions: Optional[Mapping[str, Callable[..., Any]]] = None):
        self.functions: Dict[str, Callable[..., Any]] = dict(DEFAULT_FUNCTIONS)
        if functions:
            self.functions.update(functions)
        self.environment = ExpressionEnvironment(self.functions)
        self._compiled: Dict[str, TemplateExpression] = {}

    # ------------------------------------------------------------------
    # Fragmentos
    # ------------------------------------------------------------------
    @staticmethod
    def find_fragments(template: str) -> List[Fragment]:
        fragments = []
        for match in FRAGMENT_PATTERN.finditer(template):
            start = match.start()
            line = template.count("\n", 0, start) + 1
            column = start - (template.rfind("\n", 0, start) + 1) + 1
            fragments.append(
                Fragment(
                    wrapper=match.group(0),
                    expression=match.group("expression").strip(),
                    start=start,
                    end=match.end(),
                    line=line,
                    column=column,
                )
            )
        return fragments

    @staticmethod
    def has_expression(value: Any) -> bool:
        return isinstance(value, str) and FRAGMENT_PATTERN.search(value) is not None

    # ------------------------------------------------------------------
    # Expressões isoladas
    # ------------------------------------------------------------------
    def compile(self, expression: str) -> TemplateExpression:
        compiled = self._compiled.get(expression)
        if compiled is None:
            compiled = self.environment.compile_expression(expression.strip())
            self._compiled[expression] = compiled
        return compiled

    def evaluate_expression(self, expression: str, bindings: Optional[Mapping[str, Any]] = None) -> Result:
        """Avalia uma expressão sem delimitadores `${{ }}`."""
        try:
            compiled = self.compile(expression)
        except TemplateSyntaxError as exc:
            return Err(EXPRESSION, {
                "code": EXPRESSION_INVALID,
                "message": f"Invalid expression ${{{{ {expression} }}}}: {exc.message or exc}",
                "expression": expression,
            })

        try:
            value = compiled(dict(bindings or {}))
        except Exception as exc:
            return Err(EXPRESSION, {
                "code": EXPRESSION_INVALID,
                "message": f"Could not evaluate the expression ${{{{ {expression} }}}}: {exc}",
                "expression": expression,
                "exc_type": exc.__class__.__name__,
            })

        if value is None:
            return Err(EXPRESSION, {
                "code": EXPRESSION_UNRESOLVED,
                "message": f"Could not evaluate the expression ${{{{ {expression} }}}}",
                "expression": expression,
            })
        return Ok(value)

    def _evaluate_fragment(self, fragment: Fragment, template: str, bindings: Optional[Mapping[str, Any]]) -> Result:
        result = self.evaluate_expression(fragment.expression, bindings)
        if isinstance(result, Ok):
            return result
        context = dict(result.context)
        context.update({
            "template": template,
            "line": fragment.line,
            "column": fragment.column,
            "message": f"{context['message']} (line {fragment.line}, column {fragment.column}) in: {template}",
        })
        return Err(result.kind, context)

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------
    def evaluate(
        self,
        template: Any,
        bindings: Optional[Mapping[str, Any]] = None,
        on_failure: Optional[FailureHandler] = None,
    ) -> Any:
        """
        Substitui cada fragmento pelo resultado convertido em string.

        Templates sem fragmento (ou valores que não são string) são
        devolvidos sem alteração. Fragmentos são resolvidos da esquerda
        para a direita, de forma independente.
        """
        if not isinstance(template, str):
            return template
        fragments = self.find_fragments(template)
        if not fragments:
            return template

        handler = on_failure or raise_on_failure
        parts: List[str] = []
        cursor = 0
        for fragment in fragments:
            parts.append(template[cursor:fragment.start])
            result = self._evaluate_fragment(fragment, template, bindings)
            if isinstance(result, Ok):
                parts.append(stringify(result.value))
            else:
                replacement = handler(result)
                parts.append(fragment.wrapper if replacement is None else stringify(replacement))
            cursor = fragment.end
        parts.append(template[cursor:])
        return "".join(parts)

    def resolve(
        self,
        template: Any,
        bindings: Optional[Mapping[str, Any]] = None,
        on_failure: Optional[FailureHandler] = None,
    ) -> Any:
        """
        Como `evaluate`, mas devolve o valor nativo quando o template é
        exatamente um fragmento (`"${{ steps.a.rows }}"` → lista).
        """
        if not isinstance(template, str):
            return template
        fragments = self.find_fragments(template)
        if len(fragments) == 1 and fragments[0].wrapper == template.strip():
            result = self._evaluate_fragment(fragments[0], template, bindings)
            if isinstance(result, Ok):
                return result.value
            replacement = (on_failure or raise_on_failure)(result)
            return template if replacement is None else replacement
        return self.evaluate(template, bindings, on_failure)

    def resolve_recursive(
        self,
        data: Any,
        bindings: Optional[Mapping[str, Any]] = None,
        on_failure: Optional[FailureHandler] = None,
    ) -> Any:
        if isinstance(data, Mapping):
            return {key: self.resolve_recursive(value, bindings, on_failure) for key, value in data.items()}
        if isinstance(data, (list, tuple)):
            return [self.resolve_recursive(value, bindings, on_failure) for value in data]
        return self.resolve(data, bindings, on_failure)

    # ------------------------------------------------------------------
    # Referências
    # ------------------------------------------------------------------
    def find_variable_names(self, template: Any) -> List[str]:
        """Nomes pontuados referenciados pelos fragmentos do template."""
        if not isinstance(template, str):
            return []
        names: List[str] = []
        for fragment in self.find_fragments(template):
            try:
                expr = self.environment.parse_expression(fragment.expression)
            except TemplateSyntaxError:
                continue
            collector = _NameCollector(set(self.functions))
            collector.visit(expr)
            for name in collector.names:
                if name not in names:
                    names.append(name)
        return names
