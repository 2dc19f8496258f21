"""
Canonical node kinds produced by the bundled Python adapter.

The engine itself treats kinds as opaque strings; only the rule catalogue and
the adapters agree on this vocabulary.
"""

MODULE = "module"
FUNCTION_DEF = "function_def"
LAMBDA = "lambda"
CLASS_DEF = "class_def"
IDENTIFIER = "identifier"
PARAMETERS = "parameters"
PARAMETER = "parameter"
ANNOTATION = "annotation"
DEFAULT = "default"
BLOCK = "block"
ELSE = "else"

IF = "if"
IF_EXP = "if_exp"
FOR = "for"
WHILE = "while"
WITH = "with"
TRY = "try"
EXCEPT = "except"
RETURN = "return"

DECLARATION = "declaration"
GLOBAL_DECLARATION = "global_declaration"
ASSIGNMENT = "assignment"
AUGMENTED_ASSIGNMENT = "augmented_assignment"
IMPORT = "import"

NAME = "name"
ATTRIBUTE = "attribute"
SUBSCRIPT = "subscript"
CALL = "call"
CONSTANT = "constant"
UNARY_NOT = "unary_not"
UNARY_OP = "unary_op"
COMPARE = "compare"
BOOL_OP = "bool_op"
BINARY_OP = "binary_op"
TUPLE = "tuple"
LIST = "list"
STARRED = "starred"

SUPPRESSION = "suppression"

# Kinds whose bodies belong to a different function-level unit.
NESTED_UNIT_KINDS: frozenset[str] = frozenset({FUNCTION_DEF, LAMBDA, CLASS_DEF})
