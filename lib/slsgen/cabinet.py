#!/usr/bin/env python3
"""Cabinet model: classes, chassis layout and per-cabinet networks"""
# vim: tabstop=4 expandtab shiftwidth=4 softtabstop=4

import logging

from slsgen import xname as xnames
from slsgen.errors import UnknownCabinetKind, InvalidOverride, MissingChassisCount
from slsgen.errors import InvalidChassisCount, NotAirCooledCapable, NoAirCooledChassis
from slsgen.errors import UnknownCabinet, SubnetNotFound

CLASS_RIVER = "River"
CLASS_HILL = "Hill"
CLASS_MOUNTAIN = "Mountain"
CLASSES = [CLASS_RIVER, CLASS_HILL, CLASS_MOUNTAIN]

KIND_RIVER = "river"
KIND_HILL = "hill"
KIND_MOUNTAIN = "mountain"
KIND_EX2000 = "EX2000"
KIND_EX2500 = "EX2500"
KIND_EX3000 = "EX3000"
KIND_EX4000 = "EX4000"

_kind_classes = {
    KIND_RIVER: CLASS_RIVER,
    KIND_HILL: CLASS_HILL,
    KIND_EX2000: CLASS_HILL,
    KIND_EX2500: CLASS_HILL,
    KIND_MOUNTAIN: CLASS_MOUNTAIN,
    KIND_EX3000: CLASS_MOUNTAIN,
    KIND_EX4000: CLASS_MOUNTAIN,
}

# Kinds that name a specific cabinet model
MODEL_KINDS = [KIND_EX2000, KIND_EX2500, KIND_EX3000, KIND_EX4000]

DEFAULT_RIVER_CHASSIS = [0]
DEFAULT_HILL_CHASSIS = [1, 3]
DEFAULT_MOUNTAIN_CHASSIS = [0, 1, 2, 3, 4, 5, 6, 7]

# EX2500 air cooled hardware always lives in this chassis
EX2500_AIR_COOLED_CHASSIS = 4

# Networks carrying per-cabinet subnets, the suffix is dropped in the cabinet entry
CABINET_NETWORKS = ["NMN", "HMN", "NMN_MTN", "HMN_MTN", "NMN_RVR", "HMN_RVR"]

def classify(kind):
    try:
        return _kind_classes[kind]
    except KeyError:
        raise UnknownCabinetKind("unknown cabinet kind: %s" % kind, context=kind)

def is_model(kind):
    return kind in MODEL_KINDS


class ChassisCount(object):
    def __init__(self, liquid_cooled=0, air_cooled=0):
        self.liquid_cooled = liquid_cooled
        self.air_cooled = air_cooled

    @classmethod
    def from_dict(cls, data):
        if data is None:
            return None
        return cls(liquid_cooled=int(data.get('liquid-cooled', 0) or 0),
                   air_cooled=int(data.get('air-cooled', 0) or 0))

    def __repr__(self):
        return "ChassisCount(liquid_cooled=%d, air_cooled=%d)" % (self.liquid_cooled, self.air_cooled)


class Cabinet(object):
    """ A single cabinet after kind classification and chassis validation """
    def __init__(self, xname, kind, cabinet_class, model=None, air_cooled_chassis=None,
                 liquid_cooled_chassis=None, networks=None):
        self.xname = xname
        self.kind = kind
        self.cabinet_class = cabinet_class
        self.model = model
        self.air_cooled_chassis = list(air_cooled_chassis or [])
        self.liquid_cooled_chassis = list(liquid_cooled_chassis or [])
        self.networks = networks or {}

    @property
    def number(self):
        return xnames.ordinals(self.xname)[0]

    def __repr__(self):
        return "Cabinet(%s, %s, air=%s, liquid=%s)" % (self.xname, self.cabinet_class,
                                                       self.air_cooled_chassis, self.liquid_cooled_chassis)


def _ex2500_chassis(xname, chassis_count):
    if chassis_count is None:
        raise MissingChassisCount("EX2500 cabinet %s requires an air-cooled/liquid-cooled chassis count" % xname, context=xname)
    air = chassis_count.air_cooled
    liquid = chassis_count.liquid_cooled
    if air == 0 and 1 <= liquid <= 3:
        return [], list(range(liquid))
    if air == 1 and liquid == 0:
        return [EX2500_AIR_COOLED_CHASSIS], []
    if air == 1 and liquid == 1:
        return [EX2500_AIR_COOLED_CHASSIS], [0]
    raise InvalidChassisCount("invalid chassis count for EX2500 cabinet %s: %d air-cooled, %d liquid-cooled" %
                              (xname, air, liquid), context=xname)

def build_cabinet(kind, cabinet_id, chassis_count=None, networks=None):
    """ Build a Cabinet from its kind, id and optional chassis count override """
    cabinet_class = classify(kind)
    cab = xnames.cabinet(cabinet_id)
    xnames.validate(cab, xnames.CABINET)

    if kind == KIND_EX2500:
        air, liquid = _ex2500_chassis(cab, chassis_count)
    elif chassis_count is not None:
        raise InvalidOverride("chassis count override is not allowed for %s cabinet %s" % (kind, cab), context=cab)
    elif cabinet_class == CLASS_RIVER:
        air, liquid = DEFAULT_RIVER_CHASSIS, []
    elif cabinet_class == CLASS_HILL:
        air, liquid = [], DEFAULT_HILL_CHASSIS
    else:
        air, liquid = [], DEFAULT_MOUNTAIN_CHASSIS

    model = kind if is_model(kind) else None
    return Cabinet(cab, kind, cabinet_class, model=model, air_cooled_chassis=air,
                   liquid_cooled_chassis=liquid, networks=networks)


class CabinetDetail(object):
    def __init__(self, cabinet_id, chassis_count=None, nmn_subnet=None, nmn_vlan=0,
                 hmn_subnet=None, hmn_vlan=0):
        self.id = cabinet_id
        self.chassis_count = chassis_count
        self.nmn_subnet = nmn_subnet
        self.nmn_vlan = nmn_vlan
        self.hmn_subnet = hmn_subnet
        self.hmn_vlan = hmn_vlan

    @classmethod
    def from_dict(cls, data):
        return cls(int(data.get('id', 0)),
                   chassis_count=ChassisCount.from_dict(data.get('chassis-count')),
                   nmn_subnet=data.get('nmn-subnet'),
                   nmn_vlan=int(data.get('nmn-vlan', 0) or 0),
                   hmn_subnet=data.get('hmn-subnet'),
                   hmn_vlan=int(data.get('hmn-vlan', 0) or 0))


class CabinetGroupDetail(object):
    """ A group of cabinets of the same kind, as found in cabinets.yaml """
    def __init__(self, kind, total_number=0, starting_id=0, cabinets=None):
        self.kind = kind
        self.total_number = total_number
        self.starting_id = starting_id
        self.cabinets = list(cabinets or [])

    @classmethod
    def from_dict(cls, data):
        group = cls(data['type'],
                    total_number=int(data.get('total_number', 0) or 0),
                    starting_id=int(data.get('starting_id', 0) or 0),
                    cabinets=[CabinetDetail.from_dict(cab) for cab in data.get('cabinets') or []])
        # Fail early on unknown kinds
        group.cabinet_class
        return group

    @property
    def cabinet_class(self):
        return classify(self.kind)

    def populate_ids(self):
        """ Pad the detail list with sequential ids up to total_number """
        if len(self.cabinets) >= self.total_number:
            return
        existing = len(self.cabinets)
        for index in range(existing, self.total_number):
            self.cabinets.append(CabinetDetail(self.starting_id + index))
        logging.debug("Populated %d %s cabinet ids starting at %d", self.total_number - existing,
                      self.kind, self.starting_id)

    def cabinet_ids(self):
        return [detail.id for detail in self.cabinets]


# Cabinet filters take a group and one of its details
def kind_filter(kind):
    return lambda group, detail: group.kind == kind

def class_filter(cabinet_class):
    return lambda group, detail: group.cabinet_class == cabinet_class

def air_cooled_count_filter(count):
    return lambda group, detail: detail.chassis_count is not None and detail.chassis_count.air_cooled == count

def liquid_cooled_count_filter(count):
    return lambda group, detail: detail.chassis_count is not None and detail.chassis_count.liquid_cooled == count

def and_filter(*filters):
    return lambda group, detail: all([f(group, detail) for f in filters])

def or_filter(*filters):
    return lambda group, detail: any([f(group, detail) for f in filters])


def cabinet_networks(networks, detail, cabinet_class):
    """ Per-cabinet CIDR/gateway/VLAN map taken from the cabinet_<id> subnets """
    subnet_name = "cabinet_%d" % detail.id
    cabnets = dict()
    for netname in CABINET_NETWORKS:
        if netname not in networks:
            continue
        try:
            subnet = networks[netname].lookup_subnet(subnet_name)
        except SubnetNotFound:
            continue
        key = netname.replace("_MTN", "").replace("_RVR", "")
        cabnets[key] = {
            'CIDR': subnet.cidr,
            'Gateway': str(subnet.gateway),
            'VLan': subnet.vlan_id,
        }
    if not cabnets:
        return {}
    result = {'cn': cabnets}
    if cabinet_class == CLASS_RIVER:
        result['ncn'] = cabnets
    return result


class CabinetModel(object):
    """ All cabinets of a system grouped by class and keyed by xname """
    def __init__(self, cabinets=None):
        self.cabinets = dict()
        for cab in cabinets or []:
            self.add(cab)

    def add(self, cab):
        self.cabinets[cab.xname] = cab

    def by_class(self, cabinet_class):
        return dict([(x, cab) for x, cab in self.cabinets.items() if cab.cabinet_class == cabinet_class])

    @property
    def river(self):
        return self.by_class(CLASS_RIVER)

    @property
    def hill(self):
        return self.by_class(CLASS_HILL)

    @property
    def mountain(self):
        return self.by_class(CLASS_MOUNTAIN)

    def sorted_xnames(self, cabinet_class):
        return sorted(self.by_class(cabinet_class), key=xnames.sort_key)

    def get(self, cab):
        try:
            return self.cabinets[cab]
        except KeyError:
            raise UnknownCabinet("unknown cabinet: %s" % cab, context=cab)

    def can_contain_air_cooled(self, cab):
        """ True when air cooled (River style) hardware may be placed in this cabinet """
        cabinet = self.get(cab)
        if cabinet.cabinet_class == CLASS_RIVER:
            return True
        if cabinet.kind == KIND_EX2500:
            if not cabinet.air_cooled_chassis:
                raise NoAirCooledChassis("EX2500 cabinet %s has no air-cooled chassis" % cab, context=cab)
            return True
        raise NotAirCooledCapable("%s cabinet %s cannot contain air-cooled hardware" %
                                  (cabinet.cabinet_class, cab), context=cab)

    def river_chassis_for(self, cab):
        """ Chassis xname to use for air cooled hardware in this cabinet """
        self.can_contain_air_cooled(cab)
        cabinet = self.get(cab)
        if cabinet.cabinet_class == CLASS_RIVER:
            return xnames.child(cab, 'c', DEFAULT_RIVER_CHASSIS[0])
        return xnames.child(cab, 'c', cabinet.air_cooled_chassis[0])


def build_cabinet_model(groups, networks=None):
    """ Build every cabinet of every group, attaching per-cabinet networks when known """
    model = CabinetModel()
    for group in groups:
        for detail in group.cabinets:
            cabnets = cabinet_networks(networks, detail, group.cabinet_class) if networks else {}
            cab = build_cabinet(group.kind, detail.id, chassis_count=detail.chassis_count, networks=cabnets)
            if cab.xname in model.cabinets:
                logging.warning("Cabinet %s is listed more than once, keeping the last entry", cab.xname)
            model.add(cab)
    return model

def default_groups(settings=None):
    """ Cabinet groups built from counts and starting ids when no cabinets file is given """
    settings = settings or {}
    defaults = [
        (KIND_MOUNTAIN, 4, 1000),
        (KIND_RIVER, 1, 3000),
        (KIND_HILL, 0, 9000),
    ]
    groups = []
    for kind, count, start in defaults:
        conf = settings.get(kind, {})
        group = CabinetGroupDetail(kind, total_number=int(conf.get('count', count)),
                                   starting_id=int(conf.get('starting_id', start)))
        group.populate_ids()
        groups.append(group)
    return groups
