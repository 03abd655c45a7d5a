"""Bidirectional lookup between numeric reply codes and their symbolic names.

The table is data, loaded from ``data/numerics.toml``, which maps the
three-digit code (as a string key) to a lower-case name such as ``welcome``.
"""
import functools
import logging
import os
from types import MappingProxyType
from typing import Mapping, Optional, TextIO

import toml


LOG = logging.getLogger(__name__)

#: Path of the numeric table shipped with the package
DEFAULT_PATH = os.path.join(os.path.dirname(__file__), 'data', 'numerics.toml')


class NumericTable:
    """An immutable code <-> name mapping.

    >>> table = NumericTable({'001': 'welcome', '433': 'nicknameinuse'})
    >>> table.name(1)
    'welcome'
    >>> table.code('nicknameinuse')
    433
    >>> table.code('msg') is None
    True
    """
    def __init__(self, data: Mapping[str, str]):
        by_code = {}
        by_name = {}
        for code, name in data.items():
            number = int(code)
            if name in by_name:
                raise ValueError(f"duplicate numeric name {name!r} ({by_name[name]} and {number})")
            by_code[number] = name
            by_name[name] = number
        self._by_code = MappingProxyType(by_code)
        self._by_name = MappingProxyType(by_name)

    def __len__(self):
        return len(self._by_code)

    def __contains__(self, item):
        if isinstance(item, int):
            return item in self._by_code
        return item in self._by_name

    def __iter__(self):
        """Iterate over ``(code, name)`` pairs in code order."""
        return iter(sorted(self._by_code.items()))

    def name(self, code) -> Optional[str]:
        """Get the symbolic name for *code* (an int or numeric string), or None."""
        return self._by_code.get(int(code))

    def code(self, name: str) -> Optional[int]:
        """Get the numeric code for symbolic *name*, or None."""
        return self._by_name.get(name)

    @classmethod
    def from_file(cls, f: TextIO) -> 'NumericTable':
        return cls(toml.load(f))

    @classmethod
    def from_path(cls, path: str) -> 'NumericTable':
        with open(path, 'r', encoding='utf-8') as f:
            table = cls.from_file(f)
        LOG.debug('loaded %s numeric replies from %s', len(table), path)
        return table


@functools.lru_cache(maxsize=None)
def load(path: str = DEFAULT_PATH) -> NumericTable:
    """Get the :class:`NumericTable` for *path*, loading it at most once per process."""
    return NumericTable.from_path(path)
