from .tokens import MACRO_DELIMITERS, tokenize


class MacroExpander:
    """
    Macro substitution over a symbol table.

    Names being expanded on the current path are tracked in ``seen``;
    meeting one of them again emits it verbatim, which keeps
    self-referencing definitions finite. Nested expansions are kept on
    an explicit stack, so chain length is bounded by the number of
    defined macros rather than the interpreter's recursion limit.
    """

    def __init__(self, symbols, delimiters=MACRO_DELIMITERS):
        self.symbols = symbols
        self.delimiters = delimiters
        self.seen = set()

    def expand(self, name):
        """
        Resolve name to its fully expanded text.

        Returns ``(text, was_macro)``. Undefined names come back
        unchanged with was_macro False.
        """
        if name in self.seen:
            return name, False
        value = self.symbols.get(name)
        if value is None:
            return name, False
        return self._expand(name, value), True

    def expand_text(self, text):
        """Substitute every macro name in text, keeping delimiters as is."""
        return self._expand(None, text)

    def _pieces(self, text):
        for token, delimiter in tokenize(text, self.delimiters):
            if token:
                yield token, True
            if delimiter is not None:
                yield delimiter, False

    def _expand(self, name, text):
        if name is not None:
            self.seen.add(name)
        # Each frame is (name, pieces still to read, output so far).
        stack = [(name, self._pieces(text), [])]
        try:
            while True:
                name, pieces, output = stack[-1]
                for piece, is_token in pieces:
                    value = None
                    if is_token and piece not in self.seen:
                        value = self.symbols.get(piece)
                    if value is None:
                        output.append(piece)
                        continue
                    self.seen.add(piece)
                    stack.append((piece, self._pieces(value), []))
                    break
                else:
                    stack.pop()
                    if name is not None:
                        self.seen.discard(name)
                    result = "".join(output)
                    if not stack:
                        return result
                    stack[-1][2].append(result)
        finally:
            for name, _, _ in stack:
                if name is not None:
                    self.seen.discard(name)
