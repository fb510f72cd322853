import argparse
import logging
import math
from enum import Enum

import matplotlib.pyplot as plt
import numpy as np

logger = logging.getLogger(__name__)


###################
## Configuration ##
###################

PROMPT = '\n>>> '
DEFAULT_LOG_LEVEL = 'WARNING'
LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'

VAR_KEYWORDS = ('var', 'let')
FUNCTION_KEYWORDS = ('function', 'fn', 'def')
KEYWORDS = VAR_KEYWORDS + FUNCTION_KEYWORDS

# reads the last-answer register of the context
ANS_NAME = 'ans'

PLOT_RANGE = (-10, 10)
PLOT_SAMPLES = 500


############
## Tokens ##
############

class TokenType(Enum):
    NUMBER = 'Number'
    OPERATOR = 'Operator'
    PAREN = 'Paren'
    IDENTIFIER = 'Identifier'
    FUNCTION = 'Function'
    COMMA = ','


class Associativity(Enum):
    LEFT = 'Left'
    RIGHT = 'Right'


class OperatorKind(Enum):
    ADD = '+'
    SUB = '-'
    MUL = '*'
    DIV = '/'
    POW = '^'
    UNARY_MINUS = 'u'
    ASSIGN = '='

    @property
    def precedence(self) -> int:
        """Higher binds tighter."""
        return _PRECEDENCE[self]

    @property
    def associativity(self) -> Associativity:
        if self in (OperatorKind.POW, OperatorKind.UNARY_MINUS):
            return Associativity.RIGHT
        return Associativity.LEFT

    @property
    def symbol(self) -> str:
        return '-' if self is OperatorKind.UNARY_MINUS else self.value


_PRECEDENCE = {
    OperatorKind.ADD: 2,
    OperatorKind.SUB: 2,
    OperatorKind.MUL: 3,
    OperatorKind.DIV: 3,
    OperatorKind.POW: 4,
    OperatorKind.UNARY_MINUS: 5,
    OperatorKind.ASSIGN: 6,
}


class Paren(Enum):
    LEFT = '('
    RIGHT = ')'


class Token():
    """
    A single lexical unit. Equality only looks at the type, the value and the
    argument count of function calls; the source text and index are kept
    around to point at the token when something goes wrong.
    """

    def __init__(self, tok_type: TokenType, tok_val, text: str = None,
                 index: int = 0, length: int = 1, argc: int = None):
        self.type = tok_type
        self.value = tok_val
        self.text = text
        self.index = index
        self.length = length
        self.argc = argc

    def is_paren(self, kind: Paren) -> bool:
        return self.type is TokenType.PAREN and self.value is kind

    def with_argc(self, argc: int) -> 'Token':
        return Token(self.type, self.value, self.text, self.index, self.length, argc)

    def throw(self, error_cls: type, message: str, **extra):
        raise error_cls(message, self.text, self.index, self.length, **extra)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Token):
            return NotImplemented
        return (self.type, self.value, self.argc) == (other.type, other.value, other.argc)

    def __hash__(self) -> int:
        return hash((self.type, self.value, self.argc))

    def __str__(self) -> str:
        match self.type:
            case TokenType.NUMBER:
                return format_number(self.value)
            case TokenType.OPERATOR:
                return self.value.symbol
            case TokenType.PAREN:
                return self.value.value
            case TokenType.FUNCTION:
                return self.value.name
            case TokenType.COMMA:
                return ','
        return str(self.value)

    def __repr__(self) -> str:
        return f'Token({self.type}, {self})'


def format_number(value: float) -> str:
    """Formats a number so that the tokenizer can read it back."""
    if math.isfinite(value) and float(value).is_integer():
        return str(int(value))
    return np.format_float_positional(value, trim='-')


###############
## Tokenizer ##
###############

SINGLE_CHAR_TOKENS = {
    '(': (TokenType.PAREN, Paren.LEFT),
    ')': (TokenType.PAREN, Paren.RIGHT),
    '+': (TokenType.OPERATOR, OperatorKind.ADD),
    '-': (TokenType.OPERATOR, OperatorKind.SUB),
    '*': (TokenType.OPERATOR, OperatorKind.MUL),
    '/': (TokenType.OPERATOR, OperatorKind.DIV),
    '^': (TokenType.OPERATOR, OperatorKind.POW),
    ',': (TokenType.COMMA, ','),
}


class Tokenizer():
    """
    Handles initial processing of the input string.

    Identifiers are resolved against the context while scanning, so a name
    that is neither a keyword, a function, a parameter of the function being
    declared nor a variable is rejected here rather than at evaluation time.
    A line starting with a declaration keyword is processed (and committed to
    the context) as a whole.
    """

    def __init__(self, line: str, ctx: 'EvalContext'):
        self.line = line
        self.ctx = ctx
        self.index = 0
        # parameter names of the function currently being declared
        self.local_names: 'tuple[str, ...]' = ()

    def make_tokens(self) -> 'list[Token]':
        """
        Converts the line into a list of tokens. Declarations return an
        empty list (function) or the single number that was assigned (var).
        """
        self._skip_whitespace()
        keyword = self._peek_word()
        if keyword in VAR_KEYWORDS:
            return self._variable_declaration()
        if keyword in FUNCTION_KEYWORDS:
            return self._function_declaration()
        return self._expression()

    def _expression(self) -> 'list[Token]':
        """Scans tokens until the end of the line."""
        tokens = []

        while self.curr_char is not None:
            c = self.curr_char  # short variable name

            if c.isspace():
                self._skip_whitespace()
                continue

            index = self.index
            if c.isdigit() or c == '.':
                num = self._make_number()
                tokens.append(Token(TokenType.NUMBER, num, self.line, index, self.index - index))
                continue
            if self._is_word_start(c):
                word = self._make_word()
                tokens.append(self._resolve_word(word, index))
                continue
            if c in SINGLE_CHAR_TOKENS:
                tok_type, tok_val = SINGLE_CHAR_TOKENS[c]
                self._advance()
                if c in '+-' and self._expects_operand(tokens):
                    if c == '+':
                        # unary plus is a no-op
                        continue
                    tok_val = OperatorKind.UNARY_MINUS
                tokens.append(Token(tok_type, tok_val, self.line, index))
                continue
            if c == '=':
                raise UnexpectedToken('Unexpected "="', self.line, index)

            # unrecognized character
            raise UnrecognizedCharacter(f"Unrecognized character '{c}'", self.line, index)

        return tokens

    def _function_declaration(self) -> 'list[Token]':
        """function = KEYWORD NAME { PARAM } "=" expr"""
        keyword = self._make_word()
        name, name_index = self._demand_name(keyword)
        self._check_declaration(name, name_index, is_function=True)

        params = []
        while True:
            self._skip_whitespace()
            c = self.curr_char
            if c is None:
                raise MissingAssignment(f'Expected "=" after the parameters of "{name}"',
                                        self.line, self.index)
            if c == '=':
                self._advance()
                break
            if c in '(),':
                # allows "function f(a, b) = ..."
                self._advance()
                continue
            if not self._is_word_start(c):
                raise UnexpectedToken(f'Unexpected "{c}" in parameter list', self.line, self.index)
            index = self.index
            param = self._make_word()
            self._check_parameter(param, index)
            params.append(param)

        self.local_names = tuple(params)
        body = self._expression()
        # fail at declaration time instead of at the first call
        build_tree(to_postfix(body))

        self.ctx.define_function(FunctionDef(name, params, body))
        return []

    def _variable_declaration(self) -> 'list[Token]':
        """var = KEYWORD NAME "=" expr"""
        keyword = self._make_word()
        name, name_index = self._demand_name(keyword)
        self._check_declaration(name, name_index, is_function=False)

        self._skip_whitespace()
        if self.curr_char != '=':
            raise MissingAssignment(f'Expected "=" after "{name}"', self.line, self.index)
        self._advance()

        body = self._expression()
        value = evaluate_tokens(body, self.ctx)

        self.ctx.define_variable(name, value)
        return [Token(TokenType.NUMBER, value, self.line, name_index, len(name))]

    def _resolve_word(self, word: str, index: int) -> Token:
        """keyword -> function -> parameter -> variable, in that order."""
        length = len(word)
        if word in KEYWORDS:
            raise UnexpectedToken(f'Unexpected keyword "{word}"', self.line, index, length)
        if word in self.ctx.functions:
            return Token(TokenType.FUNCTION, self.ctx.functions[word], self.line, index, length)
        if word in self.local_names or self.ctx.has_variable(word):
            return Token(TokenType.IDENTIFIER, word, self.line, index, length)
        raise UndefinedSymbol(f'Undefined symbol "{word}"', self.line, index, length, name=word)

    def _demand_name(self, keyword: str) -> 'tuple[str, int]':
        self._skip_whitespace()
        if self.curr_char is None or not self._is_word_start(self.curr_char):
            raise MissingIdentifierAfterKeyword(f'Expected a name after "{keyword}"',
                                                self.line, self.index)
        index = self.index
        return self._make_word(), index

    def _check_declaration(self, name: str, index: int, is_function: bool):
        length = len(name)
        if name in KEYWORDS or name == ANS_NAME:
            raise InvalidDeclaration(f'"{name}" is a reserved word', self.line, index, length)
        if self.ctx.is_builtin(name):
            raise InvalidDeclaration('Cannot override built-in definitions', self.line, index, length)
        if is_function and name in self.ctx.variables:
            raise InvalidDeclaration(f'"{name}" is already a variable', self.line, index, length)
        if not is_function and name in self.ctx.functions:
            raise InvalidDeclaration(f'"{name}" is already a function', self.line, index, length)

    def _check_parameter(self, param: str, index: int):
        if param in KEYWORDS or param == ANS_NAME or param in self.ctx.functions:
            raise InvalidDeclaration(f'"{param}" cannot be used as a parameter name',
                                     self.line, index, len(param))

    @staticmethod
    def _expects_operand(tokens: 'list[Token]') -> bool:
        """
        True when the next token should start an operand, which is what makes
        a "-" a unary minus instead of a subtraction.
        """
        if not tokens:
            return True
        prev = tokens[-1]
        return prev.type in (TokenType.OPERATOR, TokenType.COMMA) or prev.is_paren(Paren.LEFT)

    @staticmethod
    def _is_word_start(c: str) -> bool:
        return c.isalpha() or c == '_'

    def _make_number(self) -> float:
        found_period = False
        text = ''

        while self.curr_char is not None and (self.curr_char.isdigit() or self.curr_char == '.'):
            if self.curr_char == '.':
                if found_period:
                    raise MalformedNumber('Unexpected period (.)', self.line, self.index)
                found_period = True
            text += self.curr_char
            self._advance()

        try:
            return float(text)
        except ValueError:
            raise MalformedNumber('Invalid number', self.line, self.index - len(text), len(text))

    def _make_word(self) -> str:
        """
        Advances and makes a word (keyword, variable name, function name etc).
        """
        text = ''
        while self.curr_char is not None and (self.curr_char.isalnum() or self.curr_char == '_'):
            text += self.curr_char
            self._advance()
        return text

    def _peek_word(self) -> str | None:
        """Reads the word at the current position without consuming it."""
        if self.curr_char is None or not self._is_word_start(self.curr_char):
            return None
        start = self.index
        word = self._make_word()
        self.index = start
        return word

    def _skip_whitespace(self):
        """
        Keeps advancing until the current character is no longer a space.
        """
        while self.curr_char is not None and self.curr_char.isspace():
            self._advance()

    def _advance(self):
        """
        Increments the index by 1 if able.
        """
        self.index += int(self.index < len(self.line))

    @property
    def curr_char(self) -> str | None:
        """
        Retrieves the current character, or None.
        """
        return self.line[self.index] if self.index < len(self.line) else None


def tokenize(source: str, ctx: 'EvalContext') -> 'list[Token]':
    return Tokenizer(source, ctx).make_tokens()


###############
## Reorderer ##
###############

def to_postfix(tokens: 'list[Token]') -> 'list[Token]':
    """
    Shunting-yard: reorders an infix token list into postfix order.

    Function tokens wait on the operator stack until the parenthesis closing
    their argument list is found, and are then emitted with the number of
    arguments counted at the call site.
    """
    output = []
    stack = []
    # one entry per open paren: the commas seen so far, or None if the
    # paren does not open an argument list
    commas = []
    prev = None

    for token in tokens:
        if prev is not None and prev.type is TokenType.FUNCTION and not token.is_paren(Paren.LEFT):
            if token.is_paren(Paren.RIGHT) and not commas:
                token.throw(MismatchedParens, 'Unmatched ")"')
            prev.throw(MalformedCall, f'Expected "(" after "{prev}"')

        match token.type:
            case TokenType.NUMBER | TokenType.IDENTIFIER:
                output.append(token)
            case TokenType.FUNCTION:
                stack.append(token)
            case TokenType.OPERATOR:
                op = token.value
                while stack and stack[-1].type is TokenType.OPERATOR:
                    top = stack[-1].value
                    if (top.precedence > op.precedence
                            or (top.precedence == op.precedence
                                and op.associativity is Associativity.LEFT)):
                        output.append(stack.pop())
                    else:
                        break
                stack.append(token)
            case TokenType.COMMA:
                if not commas or commas[-1] is None:
                    token.throw(MisplacedComma, 'Unexpected "," outside of a function call')
                if prev.type is TokenType.COMMA or prev.is_paren(Paren.LEFT):
                    token.throw(MalformedCall, 'Missing argument before ","')
                while not stack[-1].is_paren(Paren.LEFT):
                    output.append(stack.pop())
                commas[-1] += 1
            case TokenType.PAREN if token.value is Paren.LEFT:
                opens_call = prev is not None and prev.type is TokenType.FUNCTION
                commas.append(0 if opens_call else None)
                stack.append(token)
            case TokenType.PAREN:
                # a comma only gets here inside an argument list
                if prev is not None and prev.type is TokenType.COMMA:
                    token.throw(MalformedCall, 'Missing argument after ","')
                while stack and not stack[-1].is_paren(Paren.LEFT):
                    output.append(stack.pop())
                if not stack:
                    token.throw(MismatchedParens, 'Unmatched ")"')
                stack.pop()
                count = commas.pop()
                if count is not None:
                    argc = 0 if prev.is_paren(Paren.LEFT) else count + 1
                    output.append(stack.pop().with_argc(argc))
            case _:
                token.throw(ReorderError, f'Unexpected "{token}"')
        prev = token

    if prev is not None and prev.type is TokenType.FUNCTION:
        prev.throw(MalformedCall, f'Expected "(" after "{prev}"')

    while stack:
        token = stack.pop()
        if token.type is TokenType.PAREN:
            token.throw(MismatchedParens, 'Unmatched "("')
        output.append(token)

    logger.debug('postfix: %s', ' '.join(str(t) for t in output))
    return output


#####################
## Expression tree ##
#####################

class ExpressionNode():
    """
    A node of the expression tree. Operators use `left`/`right` (unary minus
    only has `right`), function calls keep their arguments in `args`, and
    numbers and identifiers are leaves.
    """

    def __init__(self, token: Token, left: 'ExpressionNode' = None,
                 right: 'ExpressionNode' = None, args: 'tuple[ExpressionNode, ...]' = ()):
        self.token = token
        self.left = left
        self.right = right
        self.args = tuple(args)

    def __str__(self) -> str:
        """Fully parenthesized infix form, readable by the tokenizer."""
        token = self.token
        match token.type:
            case TokenType.NUMBER:
                text = format_number(token.value)
                return f'({text})' if token.value < 0 else text
            case TokenType.FUNCTION:
                return f'{token}({", ".join(str(arg) for arg in self.args)})'
            case TokenType.OPERATOR if token.value is OperatorKind.UNARY_MINUS:
                return f'(-{self.right})'
            case TokenType.OPERATOR:
                return f'({self.left} {token} {self.right})'
        return str(token)

    def __repr__(self) -> str:
        return f'ExpressionNode({self})'


def build_tree(postfix: 'list[Token]') -> ExpressionNode:
    """Builds an expression tree out of a postfix token list."""
    stack = []

    for token in postfix:
        match token.type:
            case TokenType.NUMBER | TokenType.IDENTIFIER:
                stack.append(ExpressionNode(token))
            case TokenType.OPERATOR if token.value is OperatorKind.UNARY_MINUS:
                right = _pop_operand(stack, token)
                stack.append(ExpressionNode(token, right=right))
            case TokenType.OPERATOR:
                right = _pop_operand(stack, token)
                left = _pop_operand(stack, token)
                stack.append(ExpressionNode(token, left, right))
            case TokenType.FUNCTION if token.argc is not None:
                args = [_pop_operand(stack, token) for _ in range(token.argc)]
                args.reverse()
                stack.append(ExpressionNode(token, args=args))
            case _:
                token.throw(MalformedExpression, f'Unexpected "{token}"')

    if not stack:
        raise MalformedExpression('Empty expression')
    if len(stack) > 1:
        stack[1].token.throw(MalformedExpression, 'Expected an operator')
    return stack[0]


def _pop_operand(stack: 'list[ExpressionNode]', token: Token) -> ExpressionNode:
    if not stack:
        token.throw(StackUnderflow, f'Missing operand for "{token}"')
    return stack.pop()


###############
## Evaluator ##
###############

def evaluate(node: ExpressionNode, ctx: 'EvalContext') -> float:
    """Recursively computes the value of the tree rooted at `node`."""
    token = node.token
    match token.type:
        case TokenType.NUMBER:
            return token.value
        case TokenType.IDENTIFIER:
            return ctx.lookup(token)
        case TokenType.FUNCTION:
            args = [evaluate(arg, ctx) for arg in node.args]
            return token.value.call(ctx, args, token)
        case TokenType.OPERATOR if token.value is OperatorKind.UNARY_MINUS:
            return -evaluate(node.right, ctx)
        case TokenType.OPERATOR:
            left = evaluate(node.left, ctx)
            right = evaluate(node.right, ctx)
            match token.value:
                case OperatorKind.ADD:
                    return left + right
                case OperatorKind.SUB:
                    return left - right
                case OperatorKind.MUL:
                    return left * right
                case OperatorKind.DIV:
                    if right == 0:
                        token.throw(DivisionByZero, 'Division by zero')
                    return left / right
                case OperatorKind.POW:
                    with np.errstate(all='ignore'):
                        return float(np.power(left, right, dtype=float))
    token.throw(EvalError, f'Invalid token "{token}"')


def evaluate_tokens(tokens: 'list[Token]', ctx: 'EvalContext') -> float:
    """Reorders, builds and evaluates an infix token list."""
    return evaluate(build_tree(to_postfix(tokens)), ctx)


def evaluate_source(source: str, ctx: 'EvalContext') -> float | None:
    """
    Evaluates one line of input against `ctx`.

    Returns None when there is nothing to print: an empty line or a function
    declaration. Any other result is also stored as the context's last answer.
    """
    tokens = tokenize(source, ctx)
    logger.debug('tokens: %s', tokens)
    if not tokens:
        return None

    result = evaluate_tokens(tokens, ctx)
    ctx.ans = result
    logger.debug('%r = %s', source, result)
    return result


###############
## Functions ##
###############

def _sum(*args: float) -> float:
    with np.errstate(all='ignore'):
        return float(np.add.reduce(np.asarray(args, dtype=float)))


def _unary(ufunc):
    """Wraps a numpy ufunc so that out-of-domain inputs give NaN quietly."""
    def call(x: float) -> float:
        with np.errstate(all='ignore'):
            return float(ufunc(x))
    return call


def _binary(ufunc):
    def call(a: float, b: float) -> float:
        with np.errstate(all='ignore'):
            return float(ufunc(a, b))
    return call


# name -> (parameter names, implementation); None means variadic
BUILTIN_FUNCTIONS = {
    'sin': (('x',), _unary(np.sin)),
    'cos': (('x',), _unary(np.cos)),
    'tan': (('x',), _unary(np.tan)),
    'asin': (('x',), _unary(np.arcsin)),
    'acos': (('x',), _unary(np.arccos)),
    'atan': (('x',), _unary(np.arctan)),
    'sum': (None, _sum),
    'min': (('a', 'b'), _binary(np.fmin)),
    'max': (('a', 'b'), _binary(np.fmax)),
}

BUILTIN_CONSTANTS = {
    'pi': math.pi,
    'e': math.e,
}


class FunctionDef():
    """
    A named function. The body is either the name of a builtin (a string) or
    the infix tokens of a user-defined expression, in which the parameters
    appear as identifiers. Never changed after creation.
    """

    def __init__(self, name: str, params: 'list[str]', body: 'str | list[Token]',
                 variadic: bool = False):
        self.name = name
        self.params = tuple(params)
        self.body = body if isinstance(body, str) else tuple(body)
        self.variadic = variadic

    @property
    def arity(self) -> int:
        return len(self.params)

    @property
    def is_builtin(self) -> bool:
        return isinstance(self.body, str)

    def call(self, ctx: 'EvalContext', args: 'list[float]', token: Token = None) -> float:
        """
        Handles when this function is called. Expects the *evaluated*
        arguments; `token` is the call site, used for error messages.
        """
        if not self.variadic and len(args) != self.arity:
            _throw(token, ArityMismatch,
                   f'"{self.name}" expects {self.arity} argument(s), got {len(args)}',
                   expected=self.arity, got=len(args))

        if self.is_builtin:
            builtin = BUILTIN_FUNCTIONS.get(self.body)
            if builtin is None:
                _throw(token, UnknownBuiltin, f'Unknown builtin "{self.body}"')
            return float(builtin[1](*args))

        # a repeated parameter name takes the last value bound to it
        bindings = dict(zip(self.params, args))
        body = [
            Token(TokenType.NUMBER, bindings[t.value], t.text, t.index, t.length)
            if t.type is TokenType.IDENTIFIER and t.value in bindings else t
            for t in self.body
        ]
        return evaluate_tokens(body, ctx)

    def __str__(self) -> str:
        params = ' '.join(self.params) if not self.variadic else '...'
        if self.is_builtin:
            return f'function {self.name} {params} = <builtin>'
        return f'function {self.name} {params} = {" ".join(str(t) for t in self.body)}'

    def __repr__(self) -> str:
        return f'FunctionDef({self.name!r}, {list(self.params)!r})'


def _throw(token: Token | None, error_cls: type, message: str, **extra):
    if token is None:
        raise error_cls(message, **extra)
    token.throw(error_cls, message, **extra)


#############
## Context ##
#############

class EvalContext():
    """
    Symbol table of one session: functions, variables, built-in constants
    and the last answer. Pass one explicitly to everything that needs it.
    """

    def __init__(self):
        self.functions: dict[str, FunctionDef] = {}
        self.variables: dict[str, float] = {}
        self.constants: dict[str, float] = {}
        self.ans = 0.0

        self._register_functions(BUILTIN_FUNCTIONS)
        self._register_constants(BUILTIN_CONSTANTS)

    def is_builtin(self, name: str) -> bool:
        func = self.functions.get(name)
        return name in self.constants or (func is not None and func.is_builtin)

    def has_variable(self, name: str) -> bool:
        return name == ANS_NAME or name in self.constants or name in self.variables

    def lookup(self, token: Token) -> float:
        name = token.value
        if name == ANS_NAME:
            return self.ans
        if name in self.constants:
            return self.constants[name]
        if name in self.variables:
            return self.variables[name]
        token.throw(UndefinedVariable, f'Undefined variable "{name}"', name=name)

    def define_variable(self, name: str, value: float):
        self.variables[name] = value
        logger.info('var %s = %s', name, format_number(value))

    def define_function(self, func: FunctionDef):
        self.functions[func.name] = func
        logger.info('%s', func)

    def user_functions(self) -> 'list[FunctionDef]':
        return [f for f in self.functions.values() if not f.is_builtin]

    def _register_constants(self, constants: dict[str, float]):
        for name, val in constants.items():
            self.constants[name] = val

    def _register_functions(self, functions: dict):
        for name, (params, _) in functions.items():
            self.functions[name] = FunctionDef(name, params or (), name, variadic=params is None)

    def __str__(self) -> str:
        lines = [f'var {name} = {format_number(val)}' for name, val in self.variables.items()]
        lines.extend(str(func) for func in self.user_functions())
        lines.append(f'{ANS_NAME} = {format_number(self.ans)}')
        return '\n'.join(lines)


################
## Exceptions ##
################

class LocationalException(Exception):
    def __init__(self, message: str, text: str = None, index: int = 0, length: int = 1):
        self.message = message
        self.text = text
        self.index = index
        self.length = length

        if text is None:
            super().__init__(message)
            return

        msg = f'''
ERROR: {self.text}
       {self._get_error_highlight()}
{self.message}'''
        super().__init__(msg)

    def _get_error_highlight(self) -> str:
        return ' ' * self.index + '^' * max(self.length, 1)


class CoreError(LocationalException):
    """Base class of everything `evaluate_source` can raise."""


class LexError(CoreError):
    pass


class MalformedNumber(LexError):
    pass


class UndefinedSymbol(LexError):
    def __init__(self, message: str, text: str = None, index: int = 0, length: int = 1,
                 name: str = None):
        self.name = name
        super().__init__(message, text, index, length)


class MissingIdentifierAfterKeyword(LexError):
    pass


class MissingAssignment(LexError):
    pass


class UnrecognizedCharacter(LexError):
    pass


class UnexpectedToken(LexError):
    pass


class InvalidDeclaration(LexError):
    pass


class ReorderError(CoreError):
    pass


class MismatchedParens(ReorderError):
    pass


class MisplacedComma(ReorderError):
    pass


class MalformedCall(ReorderError):
    pass


class BuildError(CoreError):
    pass


class StackUnderflow(BuildError):
    pass


class MalformedExpression(BuildError):
    pass


class EvalError(CoreError):
    pass


class DivisionByZero(EvalError):
    pass


class UndefinedVariable(EvalError):
    def __init__(self, message: str, text: str = None, index: int = 0, length: int = 1,
                 name: str = None):
        self.name = name
        super().__init__(message, text, index, length)


class ArityMismatch(EvalError):
    def __init__(self, message: str, text: str = None, index: int = 0, length: int = 1,
                 expected: int = None, got: int = None):
        self.expected = expected
        self.got = got
        super().__init__(message, text, index, length)


class UnknownBuiltin(EvalError):
    pass


class CommandError(Exception):
    """A REPL command was used incorrectly."""


################
## Calculator ##
################

class Calculator():
    def __init__(self, prompt: str = PROMPT):
        self.ctx = EvalContext()
        self.prompt = prompt
        self.commands = {
            'EXIT': self._exit,
            'VARS': self._vars,
            'PLOT': self._plot,
        }

    def _exit(self, args: str):
        """Syntax: EXIT"""
        raise SystemExit()

    def _vars(self, args: str):
        """Syntax: VARS"""
        print(self.ctx)

    def _plot(self, args: str):
        """Syntax: PLOT <function_name> [, <x_from=-10>, <x_to=10>]

        Plots the graph of a one-argument function using matplotlib without
        blocking the main thread.
        """
        usage = '\n  PLOT <function_name> [, <x_from=-10>, <x_to=10>]'
        default_x_from, default_x_to = PLOT_RANGE
        parts = [arg.strip() for arg in args.split(',')]

        try:
            if len(args) == 0:
                raise ValueError

            func_name = parts[0]
            x_min = float(parts[1]) if len(parts) > 1 else default_x_from
            x_max = float(parts[2]) if len(parts) > 2 else default_x_to
        except (ValueError, IndexError):
            raise CommandError('Syntax error. Correct usage:' + usage)

        func_def = self.ctx.functions.get(func_name)
        if func_def is None or func_def.variadic or func_def.arity != 1:
            raise CommandError(f'"{func_name}" is not a one-argument function. Correct usage:' + usage)

        x_vals = np.linspace(x_min, x_max, PLOT_SAMPLES)
        y_vals = []

        for x in x_vals:
            try:
                y = func_def.call(self.ctx, [float(x)])
            except CoreError:
                y = np.nan
            y_vals.append(y)

        arg_name = func_def.params[0]

        plt.plot(x_vals, y_vals)
        plt.xlabel(arg_name)
        plt.ylabel(f'{func_name}({arg_name})')
        plt.title(f'Graph of {func_name}({arg_name}), {arg_name} ∈ [{x_min}, {x_max}]')
        plt.grid(True)
        plt.show(block=False)

    def execute(self, line: str) -> float | None:
        """Runs a command, or evaluates the line as an expression."""
        parts = line.split(maxsplit=1)
        if parts and parts[0] in self.commands:
            handler = self.commands[parts[0]]
            handler(parts[1] if len(parts) > 1 else '')
            return None
        return evaluate_source(line, self.ctx)

    def run(self):
        """The read-eval-print loop.

        Commands are identified by the first word of the line, and handled
        seperately from a normal evaluation.
        """
        try:
            while True:
                try:
                    line = input(self.prompt).strip()
                    if not line:
                        continue

                    result = self.execute(line)
                    if result is not None:
                        print(format_number(result))
                except SystemExit:
                    break
                except (CoreError, CommandError) as e:
                    print(e)
        except (KeyboardInterrupt, EOFError):
            pass


################
## Entrypoint ##
################

def main(argv: 'list[str] | None' = None):
    parser = argparse.ArgumentParser(prog='pemdas', description='Interactive infix calculator.')
    parser.add_argument('--log-level', default=DEFAULT_LOG_LEVEL,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Logging verbosity (default: %(default)s)')
    parser.add_argument('--prompt', default=PROMPT, help='Input prompt')
    args = parser.parse_args(argv)

    logging.basicConfig(level=args.log_level, format=LOG_FORMAT, datefmt='%H:%M:%S')

    calculator = Calculator(prompt=args.prompt)
    # use numpy to handle invalid exponentiation and other niche warnings
    with np.errstate(invalid='ignore', over='ignore'):
        calculator.run()


if __name__ == '__main__':
    main()
