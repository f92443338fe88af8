#!/usr/bin/env python3
"""Management switch inventory and classification"""
# vim: tabstop=4 expandtab shiftwidth=4 softtabstop=4

import logging

from slsgen import xname as xnames
from slsgen.cabinet import CLASS_RIVER, CLASS_MOUNTAIN
from slsgen.hardware import GenericHardware, MgmtSwitchProps, MgmtHLSwitchProps, CDUMgmtSwitchProps, vault_path
from slsgen.errors import InvalidXname, InvalidSwitch, UnknownSwitchType

TYPE_LEAF_BMC = "LeafBMC"
TYPE_LEAF = "Leaf"
TYPE_SPINE = "Spine"
TYPE_CDU = "CDU"
TYPE_EDGE = "Edge"
SWITCH_TYPES = [TYPE_LEAF_BMC, TYPE_LEAF, TYPE_SPINE, TYPE_CDU, TYPE_EDGE]

BRAND_ARUBA = "Aruba"
BRAND_DELL = "Dell"
BRAND_MELLANOX = "Mellanox"
BRANDS = [BRAND_ARUBA, BRAND_DELL, BRAND_MELLANOX]

# Name prefix to switch type, leaf-bmc must be tried before leaf
NAME_PREFIXES = [
    ("sw-leaf-bmc", TYPE_LEAF_BMC),
    ("sw-spine", TYPE_SPINE),
    ("sw-leaf", TYPE_LEAF),
    ("sw-cdu", TYPE_CDU),
]

# Names used for the network_hardware reservations of each type
NAME_FORMATS = {
    TYPE_SPINE: "sw-spine-%03d",
    TYPE_LEAF: "sw-leaf-%03d",
    TYPE_LEAF_BMC: "sw-leaf-bmc-%03d",
    TYPE_CDU: "sw-cdu-%03d",
}

# xname formats accepted for each switch type
_xname_types = {
    TYPE_LEAF_BMC: (xnames.MGMT_SWITCH,),
    TYPE_LEAF: (xnames.MGMT_HL_SWITCH,),
    TYPE_SPINE: (xnames.MGMT_HL_SWITCH,),
    TYPE_EDGE: (xnames.MGMT_HL_SWITCH,),
    TYPE_CDU: (xnames.CDU_MGMT_SWITCH, xnames.MGMT_HL_SWITCH),
}

SNMP_AUTH_PROTOCOL = "MD5"
SNMP_PRIV_PROTOCOL = "DES"
SNMP_USERNAME = "testuser"


class ManagementSwitch(object):
    def __init__(self, xname, switch_type, brand=None, model=None, name=None, ip=None):
        self.xname = xname
        self.switch_type = switch_type
        self.brand = brand
        self.model = model
        self.name = name
        self.ip = ip

    @classmethod
    def from_dict(cls, data):
        """ Build from a switch_metadata.csv row """
        def field(key):
            value = data.get(key)
            if value is None:
                return None
            return value.strip() or None
        return cls(field('Switch Xname') or "", field('Type') or "",
                   brand=field('Brand'), model=field('Model'))

    def normalize(self):
        self.xname = xnames.normalize(self.xname)
        return self

    def validate(self):
        xname = self.xname
        if not xnames.is_valid(xname):
            raise InvalidXname("invalid xname for Switch: %s" % xname, context=xname)
        if self.switch_type not in SWITCH_TYPES:
            raise InvalidSwitch("invalid management switch type: %s %s" % (xname, self.switch_type), context=xname)
        if self.brand is not None and self.brand not in BRANDS:
            raise InvalidSwitch("invalid management switch brand: %s %s" % (xname, self.brand), context=xname)

        hmstype = xnames.type_of(xname)
        if hmstype not in _xname_types[self.switch_type]:
            if self.switch_type == TYPE_LEAF_BMC:
                msg = "invalid xname used for LeafBMC switch: %s, should use xXcCwW format" % xname
            elif self.switch_type == TYPE_CDU:
                msg = ("invalid xname used for CDU switch: %s, should use dDwW format "
                       "(if in an adjacent river cabinet to a hill cabinet use the xXcChHsS format)" % xname)
            else:
                msg = "invalid xname used for %s switch: %s, should use xXcChHsS format" % (self.switch_type, xname)
            raise InvalidXname(msg, context=xname)

    def __repr__(self):
        return "ManagementSwitch(%s, %s, %s, %s)" % (self.xname, self.switch_type, self.name, self.ip)


def classify_switches(reservations):
    """ Turn network_hardware reservations into typed switches

    The reservation comment holds the switch xname. Reservations that are not
    named like a management switch are ignored.
    """
    switches = []
    for reservation in reservations:
        for prefix, switch_type in NAME_PREFIXES:
            if reservation.name.startswith(prefix):
                switches.append(ManagementSwitch(reservation.comment, switch_type,
                                                 name=reservation.name, ip=reservation.ip))
                break
        else:
            logging.debug("Reservation %s is not a management switch", reservation.name)
    return switches

def extract_switches(networks, metadata):
    """ Switches reserved on the HMN hardware subnet with brand and model from the inventory """
    inventory = dict([(switch.xname, switch) for switch in metadata])
    subnet = networks['HMN'].lookup_subnet('network_hardware')
    switches = classify_switches(subnet.reservations)
    for switch in switches:
        known = inventory.get(switch.xname)
        if known is not None:
            switch.brand = known.brand
            switch.model = known.model
    return switches

def _ip(switch):
    if switch.ip is None:
        return None
    return str(switch.ip)

def to_hardware(switch):
    """ SLS hardware entry for a management switch """
    aliases = [switch.name] if switch.name else []
    if switch.switch_type == TYPE_LEAF_BMC:
        props = MgmtSwitchProps(
            ip4addr=_ip(switch),
            brand=switch.brand,
            model=switch.model,
            snmp_auth_password=vault_path(switch.xname),
            snmp_auth_protocol=SNMP_AUTH_PROTOCOL,
            snmp_priv_password=vault_path(switch.xname),
            snmp_priv_protocol=SNMP_PRIV_PROTOCOL,
            snmp_username=SNMP_USERNAME,
            aliases=aliases)
        return GenericHardware(switch.xname, CLASS_RIVER, props)

    if switch.switch_type in (TYPE_LEAF, TYPE_SPINE, TYPE_EDGE):
        props = MgmtHLSwitchProps(ip4addr=_ip(switch), brand=switch.brand, model=switch.model, aliases=aliases)
        return GenericHardware(switch.xname, CLASS_RIVER, props)

    if switch.switch_type == TYPE_CDU:
        if xnames.type_of(switch.xname) == xnames.MGMT_HL_SWITCH:
            # CDU switch racked in a river cabinet next to a hill cabinet
            props = MgmtHLSwitchProps(ip4addr=_ip(switch), brand=switch.brand, model=switch.model, aliases=aliases)
            return GenericHardware(switch.xname, CLASS_RIVER, props)
        props = CDUMgmtSwitchProps(brand=switch.brand, model=switch.model, aliases=aliases)
        return GenericHardware(switch.xname, CLASS_MOUNTAIN, props)

    raise UnknownSwitchType("unknown management switch type: %s" % switch.switch_type, context=switch.xname)
