"""
Route Visibility — restricts seller rosters and evaluation lists to the
sellers a dashboard route is allowed to see.

Matching tiers (a seller is kept on the first hit):
    1. Canonical — canonicalized stored name is in the allow-list
    2. Exact     — raw stored name is in the allow-list
    3. Fuzzy     — lower-cased whitespace tokens; a stored token matches when it
                   is a substring of an allowed token or contains one. Kept when
                   the match count reaches min_token_matches for some allowed name.

The fuzzy tier exists because stored names are inconsistent about middle
names. It over-matches on shared surnames, so the threshold is configurable.

A scope of None means the route has no restriction and lists pass through
untouched.
"""
import logging

from evalboard import config
from evalboard.resolvers.seller_identity import SellerIdentity, name_tokens

logger = logging.getLogger(__name__)

SELLER_NAME_KEY = "nombre"
EVALUATION_NAME_KEY = "seller_name"


class RouteScope:
    __slots__ = ("route_name", "allowed_seller_names", "allowed_tokens")

    def __init__(self, route_name, allowed_seller_names):
        self.route_name = route_name
        self.allowed_seller_names = frozenset(allowed_seller_names)
        self.allowed_tokens = tuple(
            tuple(name_tokens(n)) for n in sorted(self.allowed_seller_names)
        )

    def __repr__(self):
        return "RouteScope(%r, %d sellers)" % (self.route_name, len(self.allowed_seller_names))


def _tokens_match(a, b):
    return a in b or b in a


def fuzzy_token_matches(stored_tokens, allowed_tokens):
    return sum(1 for t in stored_tokens if any(_tokens_match(t, a) for a in allowed_tokens))


class VisibilityFilter:
    def __init__(self, identity=None, min_token_matches=config.DEFAULT_FUZZY_MIN_TOKEN_MATCHES):
        self.identity = identity or SellerIdentity()
        self.min_token_matches = max(1, int(min_token_matches))

    @classmethod
    def from_config(cls, identity=None):
        return cls(identity or SellerIdentity.from_config(), config.get_fuzzy_min_token_matches())

    def match_tier(self, seller_name, scope):
        """Name of the tier that admits seller_name, or None."""
        if scope is None:
            return "unrestricted"
        if not seller_name:
            return None
        allowed = scope.allowed_seller_names
        if self.identity.canonicalize(seller_name) in allowed:
            return "canonical"
        if seller_name in allowed:
            return "exact"
        stored = name_tokens(seller_name)
        if not stored:
            return None
        for tokens in scope.allowed_tokens:
            if fuzzy_token_matches(stored, tokens) >= self.min_token_matches:
                return "fuzzy"
        return None

    def allows(self, seller_name, scope):
        return self.match_tier(seller_name, scope) is not None

    def filter(self, items, scope, name_key):
        if scope is None:
            return items
        kept = [item for item in items if self.allows(item.get(name_key), scope)]
        logger.debug("[VISIBILITY] route=%s kept %d of %d", scope.route_name, len(kept), len(items))
        return kept

    def filter_sellers(self, sellers, scope):
        return self.filter(sellers, scope, SELLER_NAME_KEY)

    def filter_evaluations(self, evaluations, scope):
        return self.filter(evaluations, scope, EVALUATION_NAME_KEY)
