#!/usr/bin/env python3
"""HMN connection rows and field normalization"""
# vim: tabstop=4 expandtab shiftwidth=4 softtabstop=4

import re

from slsgen.errors import MalformedRowField, MalformedSourceRack

_rack_re = re.compile(r'^x?([0-9]+)$')
_location_re = re.compile(r'^u?([0-9]+)([lr]?)$')
_port_re = re.compile(r'^[pj]?([0-9]+)$')

def _fold(value):
    if value is None:
        return ""
    return str(value).strip().lower()

def normalize_rack(value):
    """ 'x3000', 'X3000' and '3000' all give 3000 """
    match = _rack_re.match(_fold(value))
    if not match:
        raise MalformedRowField("malformed rack: %r" % value, context=value)
    return int(match.group(1))

def normalize_location(value):
    """ Returns the rack U and the optional trailing l/r half hint

    'u19', 'U19' and '19' all give (19, ''), 'u19R' gives (19, 'r').
    """
    match = _location_re.match(_fold(value))
    if not match:
        raise MalformedRowField("malformed location: %r" % value, context=value)
    return int(match.group(1)), match.group(2)

def normalize_port(value):
    """ 'p28', 'P28', 'j28', 'J28' and '28' all give 28 """
    match = _port_re.match(_fold(value))
    if not match:
        raise MalformedRowField("malformed port: %r" % value, context=value)
    return int(match.group(1))

def half_bmc(sublocation, hint=""):
    """ BMC ordinal for the left (1) or right (2) half of a shared slot, else 0 """
    sublocation = _fold(sublocation)
    if sublocation == "l" or hint == "l":
        return 1
    if sublocation == "r" or hint == "r":
        return 2
    return 0


class HMNRow(object):
    """ One cable from hmn_connections.json """
    keys = (
        ('source', 'Source'),
        ('source_rack', 'SourceRack'),
        ('source_location', 'SourceLocation'),
        ('source_sublocation', 'SourceSubLocation'),
        ('source_parent', 'SourceParent'),
        ('destination_rack', 'DestinationRack'),
        ('destination_location', 'DestinationLocation'),
        ('destination_port', 'DestinationPort'),
    )

    def __init__(self, source, source_rack="", source_location="", source_sublocation="",
                 source_parent="", destination_rack="", destination_location="", destination_port=""):
        self.source = source
        self.source_rack = source_rack
        self.source_location = source_location
        self.source_sublocation = source_sublocation
        self.source_parent = source_parent
        self.destination_rack = destination_rack
        self.destination_location = destination_location
        self.destination_port = destination_port

    @classmethod
    def from_dict(cls, data):
        kwargs = dict()
        for attr, key in cls.keys:
            value = data.get(key)
            kwargs[attr] = "" if value is None else str(value)
        return cls(**kwargs)

    def to_dict(self):
        return dict([(key, getattr(self, attr)) for attr, key in self.keys])

    @property
    def source_lower(self):
        return self.source.strip().lower()

    @property
    def has_parent(self):
        return self.source_parent.strip() != ""

    @property
    def is_cabled(self):
        port = self.destination_port.strip()
        return port != "" and port != "0"

    def source_cabinet(self):
        try:
            return normalize_rack(self.source_rack)
        except MalformedRowField:
            raise MalformedSourceRack("malformed source rack %r for %s" % (self.source_rack, self.source),
                                      context=self.to_dict())

    def __repr__(self):
        return "HMNRow(%s)" % ", ".join(["%s=%r" % (key, getattr(self, attr)) for attr, key in self.keys])
