#!/usr/bin/env python3
"""Location identifier (xname) helpers"""
# vim: tabstop=4 expandtab shiftwidth=4 softtabstop=4

import re

from slsgen.errors import InvalidXname

SYSTEM = "System"
CDU = "CDU"
CDU_MGMT_SWITCH = "CDUMgmtSwitch"
CABINET = "Cabinet"
CABINET_PDU_CONTROLLER = "CabinetPDUController"
CABINET_PDU = "CabinetPDU"
CHASSIS = "Chassis"
CHASSIS_BMC = "ChassisBMC"
COMPUTE_MODULE = "ComputeModule"
NODE_BMC = "NodeBMC"
NODE = "Node"
ROUTER_MODULE = "RouterModule"
ROUTER_BMC = "RouterBMC"
MGMT_SWITCH = "MgmtSwitch"
MGMT_SWITCH_CONNECTOR = "MgmtSwitchConnector"
MGMT_HL_SWITCH_ENCLOSURE = "MgmtHLSwitchEnclosure"
MGMT_HL_SWITCH = "MgmtHLSwitch"

ROOT = "s0"

# HMS type, xname pattern, SLS component type
_types = [
    (SYSTEM,                   r'^s0$',                                    None),
    (CDU,                      r'^d([0-9]+)$',                             'comptype_cdu'),
    (CDU_MGMT_SWITCH,          r'^d([0-9]+)w([0-9]+)$',                    'comptype_cdu_mgmt_switch'),
    (CABINET_PDU_CONTROLLER,   r'^x([0-9]{1,4})m([0-3])$',                 'comptype_cab_pdu_controller'),
    (CABINET_PDU,              r'^x([0-9]{1,4})m([0-3])p([0-7])$',         'comptype_cab_pdu'),
    (CABINET,                  r'^x([0-9]{1,4})$',                         'comptype_cabinet'),
    (CHASSIS,                  r'^x([0-9]{1,4})c([0-7])$',                 'comptype_chassis'),
    (CHASSIS_BMC,              r'^x([0-9]{1,4})c([0-7])b(0)$',             'comptype_chassis_bmc'),
    (COMPUTE_MODULE,           r'^x([0-9]{1,4})c([0-7])s([0-9]+)$',        'comptype_compmod'),
    (NODE_BMC,                 r'^x([0-9]{1,4})c([0-7])s([0-9]+)b([0-9]+)$', 'comptype_ncard'),
    (NODE,                     r'^x([0-9]{1,4})c([0-7])s([0-9]+)b([0-9]+)n([0-9]+)$', 'comptype_node'),
    (ROUTER_MODULE,            r'^x([0-9]{1,4})c([0-7])r([0-9]+)$',        'comptype_rtrmod'),
    (ROUTER_BMC,               r'^x([0-9]{1,4})c([0-7])r([0-9]+)b([0-9]+)$', 'comptype_rtr_bmc'),
    (MGMT_SWITCH,              r'^x([0-9]{1,4})c([0-7])w([1-9][0-9]*)$',   'comptype_mgmt_switch'),
    (MGMT_SWITCH_CONNECTOR,    r'^x([0-9]{1,4})c([0-7])w([1-9][0-9]*)j([1-9][0-9]*)$', 'comptype_mgmt_switch_connector'),
    (MGMT_HL_SWITCH_ENCLOSURE, r'^x([0-9]{1,4})c([0-7])h([1-9][0-9]*)$',   None),
    (MGMT_HL_SWITCH,           r'^x([0-9]{1,4})c([0-7])h([1-9][0-9]*)s([1-9])$', 'comptype_hl_switch'),
]

_type_regexes = [(hmstype, re.compile(pattern)) for hmstype, pattern, _ in _types]
_sls_types = dict((hmstype, slstype) for hmstype, _, slstype in _types)

# Types that sit directly on a management network and can be cabled to a switch port
CONTROLLER_TYPES = frozenset([CHASSIS_BMC, ROUTER_BMC, NODE_BMC, CABINET_PDU_CONTROLLER])

_component_re = re.compile(r'([a-z]+)([0-9]+)')

def _components(xname):
    return _component_re.findall(xname.lower())

def type_of(xname):
    """ Returns the HMS type of an xname or None if it is not well formed """
    if not isinstance(xname, str):
        return None
    xname = xname.strip().lower()
    for hmstype, regex in _type_regexes:
        if regex.match(xname):
            return hmstype
    return None

def is_valid(xname):
    return type_of(xname) is not None

def validate(xname, expected=None):
    """ Raise InvalidXname unless the xname is well formed (and of the expected type) """
    hmstype = type_of(xname)
    if hmstype is None:
        raise InvalidXname("invalid xname: %s" % xname, context=xname)
    if expected is not None:
        if isinstance(expected, str):
            expected = [expected]
        if hmstype not in expected:
            raise InvalidXname("xname %s is a %s, expected %s" % (xname, hmstype, "/".join(expected)), context=xname)
    return hmstype

def sls_type(hmstype):
    return _sls_types.get(hmstype)

def normalize(xname):
    """ Lowercase and drop leading zeros from every ordinal: x03000c0s026b00n00 -> x3000c0s26b0n0 """
    xname = xname.strip().lower()
    parts = _components(xname)
    if not parts or "".join(["%s%s" % part for part in parts]) != xname:
        return xname
    return "".join(["%s%d" % (letter, int(number)) for letter, number in parts])

def parent_of(xname):
    """ Returns the immediate parent, cabinets and CDUs hang off the system root """
    xname = normalize(xname)
    if type_of(xname) in (None, SYSTEM):
        return None
    parts = _components(xname)
    if len(parts) == 1:
        return ROOT
    return "".join(["%s%s" % part for part in parts[:-1]])

def sort_key(xname):
    """ Ordering key comparing ordinals numerically, x2 sorts before x10 """
    return [(letter, int(number)) for letter, number in _components(xname)]

def cabinet_of(xname):
    parts = _components(normalize(xname))
    if not parts or parts[0][0] != 'x':
        return None
    return "x%s" % parts[0][1]

def ordinals(xname):
    """ Returns the numeric components of an xname as a tuple of ints """
    return tuple([int(number) for _, number in _components(xname)])

def cabinet(cab):
    return "x%d" % cab

def chassis(cab, chassis):
    return "x%dc%d" % (cab, chassis)

def child(parent, letter, ordinal):
    """ Build a child xname by appending a typed ordinal """
    return "%s%s%d" % (parent, letter, ordinal)
