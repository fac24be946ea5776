"""Canonical names for generated commands, flags and Python identifiers.

Two normalisers live here:

* :func:`kebab_case` turns an operation id, tag or parameter name into the
  token used on the command line (``getAccount`` -> ``get-account``,
  ``start_after`` -> ``start-after``). It is the sole source of command and
  flag identity, so duplicate detection depends on it being pure.
* :func:`sanitize_param_name` turns a parameter name into a valid Python
  identifier for the generated function signatures.
"""

from __future__ import annotations

import keyword
import re

_LOWER = "lower"
_UPPER = "upper"
_DIGIT = "digit"
_OTHER = "other"


def _category(ch: str) -> str:
    if "a" <= ch <= "z":
        return _LOWER
    if "A" <= ch <= "Z":
        return _UPPER
    if "0" <= ch <= "9":
        return _DIGIT
    # Non-ASCII letters are separators too; output stays ASCII.
    return _OTHER


def kebab_case(value: str) -> str:
    """Convert an arbitrary identifier to lowercase, hyphen-separated ASCII.

    Rules:

    * A hyphen is inserted where an uppercase letter follows a lowercase
      letter or a digit (``listV2Accounts`` -> ``list-v2-accounts``).
    * Any run of characters other than ASCII letters and digits collapses
      to a single hyphen.
    * Leading, trailing and repeated hyphens are removed.

    The result matches ``^[a-z0-9]+(-[a-z0-9]+)*$`` or is empty, and
    ``kebab_case(kebab_case(s)) == kebab_case(s)`` for every ``s``.

    Args:
        value: The raw identifier (operation id, tag, parameter name).

    Returns:
        The canonical token, possibly empty.

    Example::

        >>> kebab_case("getAccountStatement")
        'get-account-statement'
        >>> kebab_case("Accounts & Cards")
        'accounts-cards'
    """
    value = value.strip()
    if not value:
        return ""

    out: list[str] = []
    prev_dash = False
    prev_cat = _OTHER

    for ch in value:
        cat = _category(ch)
        if cat == _OTHER:
            if out and not prev_dash:
                out.append("-")
                prev_dash = True
        else:
            if out and not prev_dash and cat == _UPPER and prev_cat in (_LOWER, _DIGIT):
                out.append("-")
            out.append(ch.lower() if cat == _UPPER else ch)
            prev_dash = False
        prev_cat = cat

    result = "".join(out).strip("-")
    return re.sub(r"-{2,}", "-", result)


_INVALID_IDENT_RE = re.compile(r"[^a-zA-Z0-9_]")


def sanitize_param_name(name: str) -> str:
    """Convert a parameter name to a valid Python identifier.

    CamelCase boundaries become underscores, the result is lowercased, any
    character outside ``[a-z0-9_]`` becomes ``_``, runs of underscores are
    collapsed, a leading digit gets a ``_`` prefix and Python keywords get a
    trailing ``_``.

    Example::

        >>> sanitize_param_name("startAfter")
        'start_after'
        >>> sanitize_param_name("X-Idempotency-Key")
        'x_idempotency_key'
        >>> sanitize_param_name("from")
        'from_'
    """
    result = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", name)
    result = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", result)
    result = _INVALID_IDENT_RE.sub("_", result.lower())
    result = re.sub(r"_+", "_", result).strip("_")
    if not result:
        result = "param"
    if result[0].isdigit():
        result = f"_{result}"
    if keyword.iskeyword(result):
        result = f"{result}_"
    return result
