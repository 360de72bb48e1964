"""
Renderers for generated Go declarations.

Output is gofmt-shaped (tab indentation) so files stay readable even when no
external formatter is available. Stubs deliberately panic: the generator
never writes business logic.
"""

from __future__ import annotations

from typing import AbstractSet, List, Optional, Sequence, Set, Tuple

from ..models import CONTEXT_TYPE, ERROR_TYPE, Contract, Method, Parameter, has_context, has_error, is_named

RECEIVER = "r"
SPAN = "span"
CONTEXT_NAME = "ctx"
ERROR_NAME = "err"


def unique_name(base: str, taken: AbstractSet[str]) -> str:
    """``base``, or ``base`` with the first free numeric suffix from 2."""
    name = base
    n = 2
    while name in taken:
        name = f"{base}{n}"
        n += 1
    return name


def normalize_parameters(params: Sequence[Parameter], reserved: AbstractSet[str] = frozenset()) -> List[Parameter]:
    """
    Name parameters so the generated body can refer to them.

    As soon as a list has a context, an error or any named parameter, every
    entry needs a name: the context becomes ``ctx``, the error ``err`` and
    other unnamed entries ``_``. Lists without any of those are left as is.
    A generated name already used by another parameter, or listed in
    ``reserved``, gets a numeric suffix instead.
    """
    if not (has_context(params) or has_error(params) or is_named(params)):
        return list(params)
    taken: Set[str] = set(reserved)
    taken.update(
        p.identifier for p in params if p.identifier not in ("", "_") and p.type not in (CONTEXT_TYPE, ERROR_TYPE)
    )
    normalized: List[Parameter] = []
    for param in params:
        if param.type in (CONTEXT_TYPE, ERROR_TYPE):
            name = unique_name(CONTEXT_NAME if param.type == CONTEXT_TYPE else ERROR_NAME, taken)
            taken.add(name)
            normalized.append(Parameter(identifier=name, type=param.type))
        elif not param.identifier:
            normalized.append(Parameter(identifier="_", type=param.type))
        else:
            normalized.append(param)
    return normalized


def _join(normalized: Sequence[Parameter]) -> str:
    parts: List[str] = []
    for i, param in enumerate(normalized):
        following: Optional[Parameter] = normalized[i + 1] if i + 1 < len(normalized) else None
        if param.identifier and following is not None and following.identifier and following.type == param.type:
            parts.append(param.identifier)
        elif param.identifier:
            parts.append(f"{param.identifier} {param.type}")
        else:
            parts.append(param.type)
    return ", ".join(parts)


def _wrap_returns(normalized: Sequence[Parameter]) -> str:
    if not normalized:
        return ""
    src = _join(normalized)
    if is_named(normalized) or len(normalized) > 1:
        return f"({src})"
    return src


def render_parameters(params: Sequence[Parameter]) -> str:
    """Render a parameter list body, grouping adjacent names of the same type."""
    return _join(normalize_parameters(params))


def render_returns(returns: Sequence[Parameter]) -> str:
    return _wrap_returns(normalize_parameters(returns))


def _first_named(params: Sequence[Parameter], type_: str, default: str) -> str:
    for param in params:
        if param.type == type_:
            return param.identifier
    return default


def _stub_names(method: Method) -> Tuple[List[Parameter], List[Parameter], str, str]:
    params = normalize_parameters(method.parameters)
    used = {p.identifier for p in params if p.identifier}
    returns = normalize_parameters(method.returns, reserved=used)
    used.update(p.identifier for p in returns if p.identifier)
    receiver = unique_name(RECEIVER, used)
    span = unique_name(SPAN, used | {receiver})
    return params, returns, receiver, span


def render_method_stub(contract: Contract, method: Method) -> str:
    """
    Render a placeholder method for the contract's backing type.

    Methods taking a context open a tracing span named
    ``<ShortName>.<Method>`` on a tracer named after the contract package.
    Methods returning an error wrap any non-nil error with the fully
    qualified method name, and mark the span as failed when there is one.
    The receiver and span take a numeric suffix when a parameter already
    uses their name.

    Args:
        contract: Contract the method belongs to
        method: Method with types already qualified for the implementation package

    Returns:
        Go source of the method, ending with a newline
    """
    params, returns, receiver, span = _stub_names(method)
    ctx = _first_named(params, CONTEXT_TYPE, CONTEXT_NAME)
    err = _first_named(returns, ERROR_TYPE, ERROR_NAME)
    label = f"{contract.qualified_name}.{method.name}"
    rendered = _wrap_returns(returns)
    padded = f" {rendered} " if rendered else " "
    lines = [f"func ({receiver} *{contract.implementation_name}) {method.name}({_join(params)}){padded}{{"]
    if method.has_context:
        lines.append(
            f'\t{ctx}, {span} := otel.GetTracerProvider().Tracer("{contract.package_name}")'
            f'.Start({ctx}, "{contract.short_name}.{method.name}")'
        )
        if method.returns_error:
            lines += [
                "\tdefer func() {",
                f"\t\tif {err} != nil {{",
                f'\t\t\t{err} = eris.Wrap({err}, "{label}")',
                f'\t\t\t{span}.SetStatus(codes.Error, "")',
                f"\t\t\t{span}.RecordError({err})",
                "\t\t}",
                f"\t\t{span}.End()",
                "\t}()",
            ]
        else:
            lines.append(f"\tdefer {span}.End()")
        lines.append(f"\t_ = {ctx}")
    elif method.returns_error:
        lines += [
            "\tdefer func() {",
            f"\t\tif {err} != nil {{",
            f'\t\t\t{err} = eris.Wrap({err}, "{label}")',
            "\t\t}",
            "\t}()",
        ]
    lines.append(f'\tpanic("TODO: implement {label}")')
    lines.append("}")
    return "\n".join(lines) + "\n"


def render_dependency_block(contract: Contract, qualifier: Optional[str] = None) -> str:
    """
    Render the fx registration block and backing type for a new contract.

    Args:
        contract: Contract without a backing type yet
        qualifier: Name the contract package is imported under; defaults to
            the contract's package name

    Returns:
        Go source of the declarations, ending with a newline
    """
    qualifier = contract.package_name if qualifier is None else qualifier
    dependencies = contract.qualify("Dependencies")
    options = contract.qualify("Options")
    constructor = f"New{contract.name}"
    return_type = f"{qualifier}.{contract.name}" if qualifier else contract.name
    impl = contract.implementation_name
    return "\n".join(
        [
            f"type {dependencies} struct {{",
            "\tfx.In",
            "\t// Add dependencies here",
            "}",
            "",
            f"var {options} = fx.Options(",
            "\tfx.Provide(",
            f"\t\t{constructor},",
            "\t),",
            ")",
            "",
            f"func {constructor}(deps {dependencies}) {return_type} {{",
            f"\treturn &{impl}{{",
            f"\t\t{dependencies}: deps,",
            "\t}",
            "}",
            "",
            f"type {impl} struct {{",
            f"\t{dependencies}",
            "}",
        ]
    ) + "\n"
