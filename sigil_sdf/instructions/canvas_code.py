"""Canvas-call text → instructions, without evaluating code.

Text generators tend to emit sigils as a short run of 2D-canvas calls::

    ctx.beginPath();
    ctx.arc(50, 50, 30, 0, Math.PI * 2);
    ctx.stroke();

This module translates exactly that dialect into :mod:`.operations`
instances.  Nothing is executed: each statement is matched against
``ctx.<verb>(<args>)`` and every argument is reduced by a small arithmetic
evaluator that walks a whitelisted expression tree.

Accepted per statement:
    - ``ctx.<verb>(...)`` for the nine instruction verbs
    - style assignments (``ctx.lineWidth = 2``, ``strokeStyle``, ...): ignored
    - ``ctx.save()`` / ``ctx.restore()``: ignored

Accepted inside arguments:
    numeric literals, ``+ - * /``, unary sign, parentheses, ``Math.PI``,
    ``Math.SQRT2``, ``Math.sin/cos/sqrt(x)``, ``true`` / ``false``.

Everything else (variables, loops, other calls, transforms) raises
MalformedInstruction with the statement index.
"""

import ast
import logging
import math
import re
from typing import Any, List, Optional

from ..errors import MalformedInstruction, ResourceLimitExceeded
from .operations import VERB_NAMES, Instruction, instruction_from_dict

logger = logging.getLogger(__name__)

STYLE_PROPERTIES = frozenset({
    'lineWidth', 'strokeStyle', 'fillStyle', 'lineCap', 'lineJoin',
    'globalAlpha', 'miterLimit',
})
IGNORED_CALLS = frozenset({'save', 'restore'})

MAX_STATEMENT_CHARS = 1000

_MATH_CONSTANTS = {'PI': math.pi, 'SQRT2': math.sqrt(2.0)}
_MATH_FUNCTIONS = {'sin': math.sin, 'cos': math.cos, 'sqrt': math.sqrt}
_LITERALS = {'true': True, 'false': False}

_FENCE_RE = re.compile(r'```(?:javascript|js)?[ \t]*\n?')
_BLOCK_COMMENT_RE = re.compile(r'/\*.*?\*/', re.DOTALL)
_LINE_COMMENT_RE = re.compile(r'//[^\n]*')
_CALL_RE = re.compile(r'^ctx\s*\.\s*([A-Za-z_]\w*)\s*\((.*)\)$', re.DOTALL)
_ASSIGN_RE = re.compile(r'^ctx\s*\.\s*([A-Za-z_]\w*)\s*=(?!=)(.*)$', re.DOTALL)

# Only canvas method names are valid in canvas text (class names are not)
_CANVAS_VERBS = {cls.verb: cls for cls in VERB_NAMES.values()}


def strip_code(code: str) -> str:
    """Remove markdown fences and JavaScript comments."""
    code = _FENCE_RE.sub('', code)
    code = code.replace('```', '')
    code = _BLOCK_COMMENT_RE.sub('', code)
    code = _LINE_COMMENT_RE.sub('', code)
    return code.strip()


def split_statements(code: str) -> List[str]:
    """Split on ``;`` and newlines outside parentheses; blank statements dropped."""
    statements = []
    depth = 0
    current = []
    for ch in code:
        if ch == '(':
            depth += 1
        elif ch == ')':
            depth = max(0, depth - 1)
        if depth == 0 and ch in ';\n':
            statements.append(''.join(current).strip())
            current = []
            continue
        current.append(ch)
    statements.append(''.join(current).strip())
    return [s for s in statements if s]


def _eval_node(node: ast.AST) -> Any:
    if isinstance(node, ast.Constant):
        if isinstance(node.value, bool) or not isinstance(node.value, (int, float)):
            raise ValueError(f"literal {node.value!r} is not a number")
        return node.value
    if isinstance(node, ast.Name):
        if node.id in _LITERALS:
            return _LITERALS[node.id]
        raise ValueError(f"name '{node.id}' is not allowed")
    if isinstance(node, ast.Attribute):
        if isinstance(node.value, ast.Name) and node.value.id == 'Math' and node.attr in _MATH_CONSTANTS:
            return _MATH_CONSTANTS[node.attr]
        raise ValueError(f"attribute '{ast.unparse(node)}' is not allowed")
    if isinstance(node, ast.UnaryOp) and isinstance(node.op, (ast.UAdd, ast.USub)):
        value = _eval_number(node.operand)
        return -value if isinstance(node.op, ast.USub) else value
    if isinstance(node, ast.BinOp) and isinstance(node.op, (ast.Add, ast.Sub, ast.Mult, ast.Div)):
        left = _eval_number(node.left)
        right = _eval_number(node.right)
        if isinstance(node.op, ast.Add):
            return left + right
        if isinstance(node.op, ast.Sub):
            return left - right
        if isinstance(node.op, ast.Mult):
            return left * right
        if right == 0:
            raise ValueError("division by zero")
        return left / right
    if isinstance(node, ast.Call):
        func = node.func
        if (isinstance(func, ast.Attribute) and isinstance(func.value, ast.Name)
                and func.value.id == 'Math' and func.attr in _MATH_FUNCTIONS
                and len(node.args) == 1 and not node.keywords):
            arg = _eval_number(node.args[0])
            if func.attr == 'sqrt' and arg < 0:
                raise ValueError("Math.sqrt of a negative number")
            return _MATH_FUNCTIONS[func.attr](arg)
        raise ValueError(f"call '{ast.unparse(node)}' is not allowed")
    raise ValueError(f"expression '{ast.unparse(node)}' is not allowed")


def _eval_number(node: ast.AST) -> float:
    value = _eval_node(node)
    if isinstance(value, bool):
        raise ValueError("boolean used in arithmetic")
    return value


def evaluate_arguments(text: str) -> List[Any]:
    """Evaluate a comma-separated argument list with the whitelist evaluator.

    Raises
    ------
    ValueError
        Syntax error or a construct outside the whitelist
    """
    if not text.strip():
        return []
    try:
        tree = ast.parse(f"_({text})", mode='eval')
    except SyntaxError as e:
        raise ValueError(f"cannot parse arguments: {e.msg}") from e
    call = tree.body
    if not isinstance(call, ast.Call) or call.keywords:
        raise ValueError("unexpected argument syntax")
    if any(isinstance(a, ast.Starred) for a in call.args):
        raise ValueError("spread arguments are not allowed")
    return [_eval_node(a) for a in call.args]


def parse_statement(statement: str, index: int) -> Optional[Instruction]:
    """Translate one statement; None for ignored style/state statements."""
    if len(statement) > MAX_STATEMENT_CHARS:
        raise MalformedInstruction(
            f"statement longer than {MAX_STATEMENT_CHARS} characters", index=index)

    m = _ASSIGN_RE.match(statement)
    if m:
        prop = m.group(1)
        if prop in STYLE_PROPERTIES:
            return None
        raise MalformedInstruction(f"assignment to ctx.{prop} is not supported", index=index)

    m = _CALL_RE.match(statement)
    if not m:
        raise MalformedInstruction(f"not a canvas call: {statement[:60]!r}", index=index)
    verb, arg_text = m.group(1), m.group(2)
    if verb in IGNORED_CALLS:
        if arg_text.strip():
            raise MalformedInstruction(f"ctx.{verb}() takes no arguments", index=index)
        return None
    if verb not in _CANVAS_VERBS:
        raise MalformedInstruction(f"unsupported canvas call ctx.{verb}()", index=index)

    try:
        args = evaluate_arguments(arg_text)
    except (ValueError, OverflowError, RecursionError) as e:
        raise MalformedInstruction(f"ctx.{verb}(): {e}", index=index) from e
    try:
        return instruction_from_dict({'op': verb, 'args': args})
    except MalformedInstruction as e:
        raise MalformedInstruction(e.reason, index=index) from None


def parse_canvas_code(code: str, max_statements: int = 2000) -> List[Instruction]:
    """Translate canvas-call text into an instruction list.

    Parameters
    ----------
    code : str
        Generator output, optionally wrapped in a markdown code fence
    max_statements : int
        Budget on the number of statements (ignored ones included)

    Returns
    -------
    List[Instruction]
        Instructions in statement order

    Raises
    ------
    MalformedInstruction
        Any statement outside the accepted dialect; ``index`` is the
        statement's position after comments are stripped
    ResourceLimitExceeded
        More than ``max_statements`` statements
    """
    if not isinstance(code, str):
        raise MalformedInstruction(f"canvas code must be a string, got {type(code).__name__}")
    cleaned = strip_code(code)
    if 'ctx.' not in cleaned:
        raise MalformedInstruction("code contains no canvas operations")

    statements = split_statements(cleaned)
    if len(statements) > max_statements:
        raise ResourceLimitExceeded("instructions", max_statements, len(statements), stage="canvas_code")

    instructions = []
    ignored = 0
    for i, statement in enumerate(statements):
        instr = parse_statement(statement, i)
        if instr is None:
            ignored += 1
            continue
        instructions.append(instr)

    logger.debug(f"Parsed canvas code: {len(instructions)} instructions, {ignored} ignored statements")
    return instructions
