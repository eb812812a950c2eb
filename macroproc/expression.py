"""
Expression evaluator for #if and #elif directives.
Uses a Pratt parser for operator precedence parsing.
"""
import re

_TOKEN_RE = re.compile(
    r"\s*(0[xX][0-9a-fA-F]+[uUlL]*|\d+[uUlL]*|[A-Za-z_]\w*"
    r"|&&|\|\||==|!=|<=|>=|\S)"
)
_INTEGER_SUFFIX_RE = re.compile(r"[uUlL]+$")

PRECEDENCE = {
    "||": 1,
    "&&": 2,
    "|": 3,
    "^": 4,
    "&": 5,
    "==": 6, "!=": 6,
    "<": 7, ">": 7, "<=": 7, ">=": 7,
    "+": 8, "-": 8,
    "*": 9, "/": 9, "%": 9,
}


class ExpressionLexer:
    """Splits expression text into operator, number and name tokens."""

    def __init__(self, text):
        self.tokens = []
        pos = 0
        text = text.rstrip()
        while pos < len(text):
            match = _TOKEN_RE.match(text, pos)
            self.tokens.append(match.group(1))
            pos = match.end()
        self.pos = 0

    def peek(self):
        """Return current token without advancing."""
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return None

    def consume(self):
        token = self.peek()
        self.pos += 1
        return token

    def at_end(self):
        return self.pos >= len(self.tokens)


def _truncating_div(left, right):
    # C division rounds toward zero
    quotient = abs(left) // abs(right)
    return quotient if (left < 0) == (right < 0) else -quotient


def parse_integer(text):
    """Parse a C integer literal, or return None if text is not one."""
    text = _INTEGER_SUFFIX_RE.sub("", text)
    try:
        if text[:2].lower() == "0x":
            return int(text, 16)
        if len(text) > 1 and text.startswith("0"):
            return int(text, 8)
        return int(text)
    except ValueError:
        return None


class ExpressionParser:
    """
    Pratt parser for preprocessor constant expressions.
    Supports: integers, defined(), logical ops, comparison, arithmetic.
    """

    def __init__(self, text, expander, resolve_names=True):
        """
        Args:
            text: Expression source, without the directive name
            expander: MacroExpander used to look up and expand names
            resolve_names: When False every identifier evaluates to 0
        """
        self.lexer = ExpressionLexer(text)
        self.expander = expander
        self.resolve_names = resolve_names

    def parse(self):
        """Parse and evaluate the expression, returning an integer."""
        if self.lexer.at_end():
            raise SyntaxError("Empty expression")
        result = self._parse_expr(0)
        if not self.lexer.at_end():
            raise SyntaxError(f"Unexpected token: {self.lexer.peek()}")
        return result

    def _parse_expr(self, min_precedence):
        left = self._parse_primary()

        while (op := self.lexer.peek()) is not None:
            if op == ")":
                break
            precedence = PRECEDENCE.get(op, 0)
            if precedence <= 0 or precedence < min_precedence:
                break

            self.lexer.consume()
            right = self._parse_expr(precedence + 1)
            left = self._apply_binary_op(op, left, right)

        return left

    def _parse_primary(self):
        token = self.lexer.peek()
        if token is None:
            raise SyntaxError("Unexpected end of expression")

        if token == "(":
            self.lexer.consume()
            result = self._parse_expr(0)
            if self.lexer.peek() != ")":
                raise SyntaxError("Missing closing parenthesis")
            self.lexer.consume()
            return result

        if token in ("!", "+", "-"):
            self.lexer.consume()
            operand = self._parse_primary()
            if token == "!":
                return 0 if operand else 1
            elif token == "-":
                return -operand
            return operand

        if token == "defined":
            return self._parse_defined()

        value = parse_integer(token)
        if value is not None:
            self.lexer.consume()
            return value

        if token[0] == "_" or token[0].isalpha():
            self.lexer.consume()
            return self._evaluate_name(token)

        raise SyntaxError(f"Unexpected token: {token}")

    def _evaluate_name(self, name):
        if not self.resolve_names:
            return 0
        expanded, was_macro = self.expander.expand(name)
        if not was_macro or not expanded.strip():
            return 0
        # Names left in the expansion are either undefined or cyclic.
        return ExpressionParser(
            expanded, self.expander, resolve_names=False
        ).parse()

    def _parse_defined(self):
        """Parse defined(MACRO) or defined MACRO."""
        self.lexer.consume()

        has_parens = self.lexer.peek() == "("
        if has_parens:
            self.lexer.consume()

        macro_name = self.lexer.consume()
        if macro_name is None or not (
            macro_name[0] == "_" or macro_name[0].isalpha()
        ):
            raise SyntaxError("Expected identifier after 'defined'")

        if has_parens:
            if self.lexer.peek() != ")":
                raise SyntaxError("Missing closing paren in defined()")
            self.lexer.consume()

        return 1 if macro_name in self.expander.symbols else 0

    def _apply_binary_op(self, op, left, right):
        if op == "||":
            return 1 if (left or right) else 0
        elif op == "&&":
            return 1 if (left and right) else 0
        elif op == "|":
            return left | right
        elif op == "^":
            return left ^ right
        elif op == "&":
            return left & right
        elif op == "==":
            return 1 if left == right else 0
        elif op == "!=":
            return 1 if left != right else 0
        elif op == "<":
            return 1 if left < right else 0
        elif op == ">":
            return 1 if left > right else 0
        elif op == "<=":
            return 1 if left <= right else 0
        elif op == ">=":
            return 1 if left >= right else 0
        elif op == "+":
            return left + right
        elif op == "-":
            return left - right
        elif op == "*":
            return left * right
        elif op == "/":
            if right == 0:
                raise ZeroDivisionError("Division by zero")
            return _truncating_div(left, right)
        elif op == "%":
            if right == 0:
                raise ZeroDivisionError("Modulo by zero")
            return left - right * _truncating_div(left, right)
        raise SyntaxError(f"Unknown operator: {op}")


def evaluate_expression(text, expander):
    """
    Evaluate a preprocessor constant expression.

    Args:
        text: The expression following #if or #elif
        expander: MacroExpander bound to the current symbol table

    Returns:
        Integer result of the expression (non-zero = true, 0 = false)
    """
    return ExpressionParser(text, expander).parse()
