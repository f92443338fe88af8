#!/usr/bin/env python3
"""CIDR arithmetic and VLAN bookkeeping"""
# vim: tabstop=4 expandtab shiftwidth=4 softtabstop=4

import logging
import ipaddress

from slsgen.errors import AllocationError, VlanConflict

# Usable host count to prefix length, smallest first
HOST_PREFIXES = [
    (2, 30),
    (6, 29),
    (14, 28),
    (30, 27),
    (62, 26),
    (126, 25),
    (254, 24),
    (510, 23),
    (1022, 22),
    (2046, 21),
    (4094, 20),
    (8190, 19),
    (16382, 18),
    (32766, 17),
    (65534, 16),
]

# Smallest block AddBiggestSubnet style searches will fall back to
SMALLEST_BIGGEST_PREFIX = 28

def parse_network(cidr):
    """ Parse a CIDR, host bits are allowed and dropped (10.1.1.0/16 is 10.1.0.0/16) """
    if isinstance(cidr, (ipaddress.IPv4Network, ipaddress.IPv6Network)):
        return cidr
    try:
        return ipaddress.ip_network(cidr.strip(), strict=False)
    except (ValueError, AttributeError) as e:
        raise AllocationError("invalid CIDR %r: %s" % (cidr, e), context=cidr)

def free_subnet(network, prefixlen, allocated):
    """ First aligned block of the given prefix length in network that overlaps nothing allocated """
    if prefixlen < network.prefixlen:
        raise AllocationError("have: /%d, requested: /%d" % (network.prefixlen, prefixlen), context=str(network))
    if prefixlen > network.max_prefixlen:
        raise AllocationError("invalid prefix length /%d" % prefixlen, context=str(network))

    size = 2 ** (network.max_prefixlen - prefixlen)
    candidate = int(network.network_address)
    last = int(network.broadcast_address)
    allocated = [block for block in allocated if block.version == network.version]
    while candidate + size - 1 <= last:
        block = network.__class__((candidate, prefixlen))
        clashes = [other for other in allocated if other.overlaps(block)]
        if not clashes:
            return block
        top = max([int(other.broadcast_address) for other in clashes]) + 1
        candidate = ((top + size - 1) // size) * size
    raise AllocationError("no free /%d left in %s" % (prefixlen, network), context=str(network))

def subnet_within(hosts):
    """ Prefix length of the smallest block with more than the given number of usable hosts """
    for count, prefixlen in HOST_PREFIXES:
        if count > hosts:
            return prefixlen
    raise AllocationError("no subnet size can hold %d hosts" % hosts, context=hosts)

def total_addresses(prefixlen, max_prefixlen=32):
    return 2 ** (max_prefixlen - prefixlen)

def usable_addresses(prefixlen, max_prefixlen=32):
    if prefixlen == max_prefixlen:
        return 1
    if prefixlen == max_prefixlen - 1:
        return 2
    return total_addresses(prefixlen, max_prefixlen) - 2

def broadcast(address, prefixlen):
    """ Last address of the block of the given prefix length starting at address """
    return ipaddress.ip_network((address, prefixlen), strict=False).broadcast_address

def with_last_octet(address, octet):
    """ The IPv4 address with its last byte replaced """
    packed = bytearray(ipaddress.IPv4Address(address).packed)
    packed[3] = octet
    return ipaddress.IPv4Address(bytes(packed))


class VlanRegistry(object):
    """ Tracks VLAN ids handed out to networks so none are used twice """
    def __init__(self):
        self.vlans = dict()

    def allocate(self, vlan, owner=None):
        if vlan in self.vlans:
            raise VlanConflict("VLAN %d for %s is already allocated to %s" % (vlan, owner, self.vlans[vlan]),
                               context=vlan)
        self.vlans[vlan] = owner
        logging.debug("Allocated VLAN %d to %s", vlan, owner)

    def allocate_range(self, low, high, owner=None):
        if high < low:
            raise VlanConflict("invalid VLAN range %d-%d for %s" % (low, high, owner), context=(low, high))
        used = [vlan for vlan in range(low, high + 1) if vlan in self.vlans]
        if used:
            raise VlanConflict("VLAN range %d-%d for %s overlaps VLAN %d of %s" %
                               (low, high, owner, used[0], self.vlans[used[0]]), context=(low, high))
        for vlan in range(low, high + 1):
            self.vlans[vlan] = owner
        logging.debug("Allocated VLANs %d-%d to %s", low, high, owner)

    def is_allocated(self, vlan):
        return vlan in self.vlans
