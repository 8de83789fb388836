# 2026/10/18
# Display-name lookup for wallet addresses.
import logging
from collections import OrderedDict

import requests

logger = logging.getLogger(__name__)


class ProfileCache:
    """Lazily populated, LRU-bounded address -> profile cache.

    A failed or empty lookup caches None so the address is not hit again.
    """

    def __init__(self, api_url, api_key="", max_entries=256, timeout=5, session=None):
        self.api_url = api_url
        self.api_key = api_key
        self.max_entries = max_entries
        self.timeout = timeout
        self.session = session or requests.Session()
        self._cache = OrderedDict()

    def __len__(self):
        return len(self._cache)

    def __contains__(self, address):
        return address.lower() in self._cache

    def get(self, address):
        if not address:
            return None
        key = address.lower()
        if key in self._cache:
            self._cache.move_to_end(key)
            return self._cache[key]
        profile = self._fetch(address)
        self._cache[key] = profile
        if len(self._cache) > self.max_entries:
            self._cache.popitem(last=False)
        return profile

    def get_many(self, addresses):
        return {a: self.get(a) for a in addresses if a}

    def display_name(self, address):
        profile = self.get(address)
        if profile and profile.get("username"):
            return profile["username"]
        return short_address(address)

    def _fetch(self, address):
        headers = {"API-KEY": self.api_key} if self.api_key else {}
        try:
            res = self.session.get(self.api_url, params={"address": address},
                                   headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning("profile lookup for %s failed: %s", address, e)
            return None
        if res.status_code != 200:
            return None
        return (res.json().get("result") or {}).get("user")


def short_address(address):
    if not address or len(address) < 10:
        return address or "Unknown"
    return f"{address[:6]}…{address[-4:]}"
