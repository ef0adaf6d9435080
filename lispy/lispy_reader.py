"""
Reads the raw koine parse tree into Lispy values.
"""

from lispy.lispy_datatypes import LispyValue, LispyBlock, Number, Error, Symbol, SExpr, QExpr

# Number literals must fit a signed 64-bit integer.
INT_MIN = -(2 ** 63)
INT_MAX = 2 ** 63 - 1

ROOT_TAG = 'lispy'

# Punctuation that only delimits groups and never becomes a value.
DELIMITERS = ('(', ')', '{', '}')


class LispyReader:
    def read(self, node: object) -> LispyValue:
        tag = node.get('tag')
        match self._kind(tag):
            case 'number':
                return self._read_number(node.get('text'))
            case 'symbol':
                return Symbol(node['text'])
            case 'sexpr':
                return self._read_children(SExpr(), node)
            case 'qexpr':
                return self._read_children(QExpr(), node)
            case _:
                raise NotImplementedError(f"No reader for tag '{tag}'")

    def _kind(self, tag):
        if not isinstance(tag, str):
            return None
        if tag == ROOT_TAG:
            return 'sexpr'
        # Tags are matched by substring so wrapped tags such as 'expr|number' still read.
        for kind in ('number', 'symbol', 'sexpr', 'qexpr'):
            if kind in tag:
                return kind
        return None

    def _read_number(self, text):
        try:
            n = int(text, 10)
        except (TypeError, ValueError):
            return Error("invalid number")
        if n < INT_MIN or n > INT_MAX:
            return Error("invalid number")
        return Number(n)

    def _read_children(self, block: LispyBlock, node) -> LispyBlock:
        for child in self._iter_children(node.get('children', [])):
            if self._is_structural(child):
                continue
            block.append(self.read(child))
        return block

    def _iter_children(self, children):
        # Unnamed grammar sequences arrive as nested lists; flatten them in order.
        if isinstance(children, dict):
            children = [children]
        for child in children or []:
            if isinstance(child, list):
                yield from self._iter_children(child)
            elif isinstance(child, dict):
                yield child

    def _is_structural(self, node) -> bool:
        if node.get('tag') == 'regex':
            return True
        return not node.get('children') and node.get('text') in DELIMITERS
