import logging
import os.path

logger = logging.getLogger(__name__)


class HeaderHandler:
    """
    Finds and opens included files.

    Quoted includes are looked up next to the including file first, then
    in the include paths; angle-bracket includes only in the include
    paths. Successful lookups are cached in ``resolved``.
    """

    def __init__(self, include_paths=()):
        self.include_paths = list(include_paths)
        self.resolved = {}

    def add_include_paths(self, include_paths):
        self.include_paths.extend(include_paths)

    def exists(self, path):
        return os.path.isfile(path)

    def parent_open(self, path):
        return open(path, encoding="utf-8")

    def _candidates(self, header, current_dir, local):
        if local:
            yield os.path.join(current_dir, header)
        for include_path in self.include_paths:
            yield os.path.join(include_path, header)

    def resolve(self, header, current_dir="", local=False):
        key = (header, current_dir) if local else header
        path = self.resolved.get(key)
        if path is not None:
            return path
        for candidate in self._candidates(header, current_dir, local):
            if self.exists(candidate):
                logger.debug("Resolved %s to %s", header, candidate)
                self.resolved[key] = candidate
                return candidate
        return None

    def open_header(self, header, current_dir="", local=False):
        """Return an open file object for header, or None if not found."""
        path = self.resolve(header, current_dir, local)
        if path is None:
            return None
        return self.parent_open(path)


class FakeFile:
    """In-memory stand-in for a text file: a name and a list of lines."""

    def __init__(self, name, contents):
        self.name = name
        self.contents = contents

    def __iter__(self):
        return iter(self.contents)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        pass


class FakeHandler(HeaderHandler):
    """HeaderHandler serving FakeFile objects from a path to lines map."""

    def __init__(self, header_mapping, include_paths=()):
        super().__init__(include_paths)
        self.header_mapping = {
            os.path.normpath(path): lines
            for path, lines in dict(header_mapping).items()
        }

    def exists(self, path):
        return os.path.normpath(path) in self.header_mapping

    def parent_open(self, path):
        path = os.path.normpath(path)
        lines = self.header_mapping.get(path)
        if lines is None:
            return None
        return FakeFile(path, lines)
