#!/usr/bin/env python3
"""Application node prefixes, subroles and aliases"""
# vim: tabstop=4 expandtab shiftwidth=4 softtabstop=4

import logging

from slsgen import xname as xnames
from slsgen.errors import DuplicateKey, DuplicateAlias, InvalidApplicationNodeConfig, InvalidXname

DEFAULT_PREFIXES = ["uan", "gn", "ln"]
DEFAULT_SUBROLES = {
    "uan": "UAN",
    "ln": "UAN",
    "gn": "Gateway",
}

SUBROLE_PLACEHOLDER = "~fixme~"


class ApplicationNodeConfig(object):
    def __init__(self, prefixes=None, prefix_subroles=None, aliases=None):
        self.prefixes = list(prefixes or [])
        self.prefix_subroles = dict(prefix_subroles or {})
        self.aliases = dict([(x, list(a or [])) for x, a in (aliases or {}).items()])

    @classmethod
    def from_dict(cls, data):
        """ Build from the application_node_config.yaml layout """
        data = data or {}
        return cls(prefixes=data.get('prefixes'),
                   prefix_subroles=data.get('prefix_hsm_subroles'),
                   aliases=data.get('aliases'))

    def normalize(self):
        """ Lowercase prefixes and subrole keys and canonicalize the alias xnames

        Nothing is changed when a duplicate shows up after normalization.
        """
        prefixes = [prefix.lower() for prefix in self.prefixes]

        subroles = dict()
        for prefix, subrole in self.prefix_subroles.items():
            key = prefix.lower()
            if key in subroles:
                raise DuplicateKey("found a duplicate application node prefix after normalization - Prefix: %s, Normalized Prefix: %s" %
                                   (prefix, key), context=prefix)
            subroles[key] = subrole

        aliases = dict()
        for xname, names in self.aliases.items():
            key = xnames.normalize(xname)
            if key in aliases:
                raise DuplicateKey("found a duplicate application node xname after normalization - Xname: %s, Normalized Xname: %s" %
                                   (xname, key), context=xname)
            aliases[key] = names

        self.prefixes = prefixes
        self.prefix_subroles = subroles
        self.aliases = aliases
        return self

    def validate(self):
        for xname in self.aliases:
            hmstype = xnames.type_of(xname)
            if hmstype is None:
                raise InvalidXname("invalid xname for application node used as key in Aliases map: %s" % xname,
                                   context=xname)
            if hmstype != xnames.NODE:
                raise InvalidXname("invalid type %s for Application xname in Aliases map: %s" % (hmstype, xname),
                                   context=xname)

        seen = dict()
        for xname in sorted(self.aliases, key=xnames.sort_key):
            for alias in self.aliases[xname]:
                if alias in seen:
                    raise DuplicateAlias("found duplicate application node alias: %s for xnames %s %s" %
                                         (alias, seen[alias], xname), context=alias)
                seen[alias] = xname

        unmapped = sorted([prefix for prefix, subrole in self.prefix_subroles.items()
                           if subrole == SUBROLE_PLACEHOLDER])
        if len(unmapped) > 1:
            raise InvalidApplicationNodeConfig("prefixes, '%s', have no subrole mapping. Replace `%s` placeholders with valid subroles in the Application Node Config file" %
                                               (unmapped, SUBROLE_PLACEHOLDER), context=unmapped)
        elif len(unmapped) == 1:
            raise InvalidApplicationNodeConfig("prefix, '%s', has no subrole mapping. Replace `%s` placeholder with a valid subrole in the Application Node Config file" %
                                               (unmapped, SUBROLE_PLACEHOLDER), context=unmapped)
        logging.debug("Application node config: %d prefixes, %d aliased xnames", len(self.prefixes), len(self.aliases))

    def all_prefixes(self):
        """ User prefixes first so they win over the defaults """
        return self.prefixes + DEFAULT_PREFIXES

    def subroles(self):
        subroles = dict(DEFAULT_SUBROLES)
        subroles.update(self.prefix_subroles)
        return subroles

    def match(self, source):
        """ Returns the subrole of an application node source name or None """
        source = source.strip().lower()
        subroles = self.subroles()
        for prefix in self.all_prefixes():
            if source.startswith(prefix):
                return subroles.get(prefix, "")
        return None

    def aliases_for(self, xname):
        return list(self.aliases.get(xname, []))
