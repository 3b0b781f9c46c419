"""Glob sets compiled into path predicates.

Glob dialect:
    *       any run of characters, including '/' (so '**.ts' matches 'a/b.ts')
    ?       exactly one character
    [...]   character class
    {a,b}   alternation, may nest

A pattern has to match the whole repository-relative POSIX path.
"""

import fnmatch
import re
from collections.abc import Callable, Iterable
from functools import lru_cache

PathPredicate = Callable[[str], bool]


def expand_braces(glob: str) -> list[str]:
    """Expand `{a,b}` alternations into plain fnmatch patterns.

    Example:
        >>> expand_braces("src/**.{ts,tsx}")
        ['src/**.ts', 'src/**.tsx']
    """
    depth = 0
    start = -1
    for index, char in enumerate(glob):
        if char == "{":
            if depth == 0:
                start = index
            depth += 1
        elif char == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                prefix, body, suffix = glob[:start], glob[start + 1 : index], glob[index + 1 :]
                options = _split_top_level(body)
                expanded = []
                for option in options:
                    expanded.extend(expand_braces(prefix + option + suffix))
                return expanded
    # Unbalanced or no braces: treat literally
    return [glob]


def _split_top_level(body: str) -> list[str]:
    parts = []
    depth = 0
    current = []
    for char in body:
        if char == "," and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
        current.append(char)
    parts.append("".join(current))
    return parts


@lru_cache(maxsize=1024)
def compile_glob(glob: str) -> re.Pattern[str]:
    """Compile a single glob (braces included) into an anchored regex."""
    alternatives = [fnmatch.translate(pattern) for pattern in expand_braces(glob)]
    return re.compile("|".join(f"(?:{alternative})" for alternative in alternatives))


def compile_globs(globs: Iterable[str]) -> PathPredicate:
    """Compile a glob set into a predicate that is true if any glob matches.

    An empty glob set matches nothing.
    """
    patterns = tuple(compile_glob(glob) for glob in globs)

    def matches(path: str) -> bool:
        return any(pattern.match(path) for pattern in patterns)

    return matches


def quote_globs(globs: Iterable[str]) -> str:
    """Render globs as the space-separated, single-quoted list the oracle takes.

    Example:
        >>> quote_globs(["**.ts", "**.txt"])
        "'**.ts' '**.txt'"
    """
    return " ".join(f"'{glob}'" for glob in globs)


def parse_quoted_globs(filter_string: str) -> list[str]:
    """Inverse of quote_globs."""
    return re.findall(r"'([^']*)'", filter_string)
