"""
Seller Identity — alias spellings unified to one canonical seller name.

The same person shows up under several spellings across sources (with or
without a middle name, different accents). Aggregation groups by the
canonical name, never by numeric id, since ids are only unique per source.

The alias table is an immutable mapping handed in at construction. Chains
(A -> B, B -> C) are collapsed so every alias points at its final canonical
name, which makes canonicalize() idempotent.
"""
import logging
import re
import unicodedata
from types import MappingProxyType

from evalboard import config

logger = logging.getLogger(__name__)

_MULTI_WS_RE = re.compile(r"\s+")


def normalize(text):
    if not text:
        return ""
    s = unicodedata.normalize("NFKC", str(text))
    s = s.lower()
    s = _MULTI_WS_RE.sub(" ", s).strip()
    return s


def name_tokens(text):
    return normalize(text).split()


def _collapse_chains(aliases):
    resolved = {}
    for alias in aliases:
        seen = [alias]
        target = aliases[alias]
        while target in aliases and target != alias:
            if target in seen:
                raise ValueError("Seller alias cycle: %s" % " -> ".join(seen + [target]))
            seen.append(target)
            target = aliases[target]
        if target == alias:
            raise ValueError("Seller alias cycle: %s" % " -> ".join(seen + [target]))
        resolved[alias] = target
    return resolved


class SellerIdentity:
    def __init__(self, aliases=None):
        table = {str(k): str(v) for k, v in (aliases or {}).items() if k != v}
        self._aliases = MappingProxyType(_collapse_chains(table))

    @classmethod
    def from_config(cls):
        return cls(config.get_seller_aliases())

    @property
    def aliases(self):
        return self._aliases

    def canonicalize(self, name):
        if name is None:
            return None
        return self._aliases.get(name, name)

    def names_for(self, canonical_name):
        """Every stored spelling that unifies to canonical_name, canonical first."""
        names = [canonical_name]
        names.extend(sorted(a for a, c in self._aliases.items() if c == canonical_name))
        return names
