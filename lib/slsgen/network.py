#!/usr/bin/env python3
"""slsgen networks, subnets and the address allocator"""
# vim: tabstop=4 expandtab shiftwidth=4 softtabstop=4

import logging
import ipaddress

from slsgen import cabinet as cabinets
from slsgen import ipam
from slsgen import switches as mgmtswitches
from slsgen.hardware import NodeProps
from slsgen.errors import AllocationError, SubnetNotFound, ConfigurationError, UnknownSetting
from slsgen.errors import InvalidApplicationNodeConfig

DEFAULT_MTU = 9000
DEFAULT_CABINET_PREFIX = 22
DEFAULT_HARDWARE_PREFIX = 24
DEFAULT_BOOTSTRAP_PREFIX = 24
UAI_PREFIX = 23
LB_POOL_PREFIX = 24

DEFAULT_HMN = "10.254.0.0/17"
DEFAULT_HMN_MTN = "10.104.0.0/17"
DEFAULT_HMN_RVR = "10.107.0.0/17"
DEFAULT_NMN = "10.252.0.0/17"
DEFAULT_NMN_MTN = "10.100.0.0/17"
DEFAULT_NMN_RVR = "10.106.0.0/17"
DEFAULT_NMNLB = "10.92.100.0/24"
DEFAULT_HMNLB = "10.94.100.0/24"
DEFAULT_HSN = "10.253.0.0/16"
DEFAULT_CMN = "10.103.6.0/24"
DEFAULT_CAN = "10.102.11.0/24"
DEFAULT_CHN = "10.104.7.0/24"
DEFAULT_MTL = "10.1.1.0/16"
DEFAULT_BICAN = "0.0.0.0/0"

# name, full name, cidr, vlan range, type, comment, parent device
TEMPLATES = {
    'BICAN': ("SystemDefaultRoute points the network name of the default route", DEFAULT_BICAN, [1], "ethernet", "", ""),
    'HSN': ("High Speed Network", DEFAULT_HSN, [613, 868], "slingshot10", "", ""),
    'CMN': ("Customer Management Network", DEFAULT_CMN, [7], "ethernet", "", "bond0"),
    'CAN': ("Customer Access Network", DEFAULT_CAN, [6], "ethernet", "", "bond0"),
    'CHN': ("Customer High-Speed Network", DEFAULT_CHN, [5], "ethernet", "", "bond0"),
    'HMN': ("Hardware Management Network", DEFAULT_HMN, [4], "ethernet", "", "bond0"),
    'NMN': ("Node Management Network", DEFAULT_NMN, [2], "ethernet", "", "bond0"),
    'MTL': ("Provisioning Network (untagged)", DEFAULT_MTL, [0], "ethernet",
            "This network is only valid for the NCNs", "bond0"),
    'HMN_MTN': ("Mountain Compute Hardware Management Network", DEFAULT_HMN_MTN, [3000, 3999], "ethernet", "", "bond0"),
    'HMN_RVR': ("River Compute Hardware Management Network", DEFAULT_HMN_RVR, [1513, 1769], "ethernet", "", "bond0"),
    'NMN_MTN': ("Mountain Compute Node Management Network", DEFAULT_NMN_MTN, [2000, 2999], "ethernet", "", "bond0"),
    'NMN_RVR': ("River Compute Node Management Network", DEFAULT_NMN_RVR, [1770, 1999], "ethernet", "", "bond0"),
    'NMNLB': ("Node Management Network LoadBalancers", DEFAULT_NMNLB, [], "ethernet", "", ""),
    'HMNLB': ("Hardware Management Network LoadBalancers", DEFAULT_HMNLB, [], "ethernet", "", ""),
}

# Networks whose bootstrap DHCP ranges are recomputed once hardware is known
MAIN_NETWORKS = ["BICAN", "CAN", "CHN", "CMN", "HMN", "HMN_MTN", "HMN_RVR", "MTL", "NMN", "NMN_MTN", "NMN_RVR"]

# Subnets widened to the whole network under the supernet hack
SUPERNET_SUBNETS = ["bootstrap_dhcp", "network_hardware", "can_metallb_static_pool", "can_metallb_address_pool"]

# Customer networks: static and dynamic MetalLB pools
METALLB_POOLS = {
    'CMN': [
        ('static', "cmn_metallb_static_pool", "CMN Static Pool MetalLB", "customer-management-static"),
        ('dynamic', "cmn_metallb_address_pool", "CMN Dynamic MetalLB", "customer-management"),
    ],
    'CAN': [
        ('static', "can_metallb_static_pool", "CAN Static Pool MetalLB", "customer-access-static"),
        ('dynamic', "can_metallb_address_pool", "CAN Dynamic MetalLB", "customer-access"),
    ],
    'CHN': [
        ('static', "chn_metallb_static_pool", "CHN Static Pool MetalLB", "customer-high-speed-static"),
        ('dynamic', "chn_metallb_address_pool", "CHN Dynamic MetalLB", "customer-high-speed"),
    ],
}

UAI_RESERVATIONS = {
    "uai_nmn_blackhole": ["uai-nmn-blackhole"],
    "slurmctld_service": ["slurmctld-service", "slurmctld-service-nmn"],
    "slurmdbd_service": ["slurmdbd-service", "slurmdbd-service-nmn"],
    "pbs_service": ["pbs-service", "pbs-service-nmn"],
    "pbs_comm_service": ["pbs-comm-service", "pbs-comm-service-nmn"],
}

# MetalLB services that keep a fixed last octet
PINNED_METALLB_RESERVATIONS = {
    "istio-ingressgateway": (71, ["api-gw-service", "api-gw-service-nmn.local", "packages", "registry",
                                  "spire.local", "api_gw_service", "registry.local", "packages",
                                  "packages.local", "spire"]),
    "istio-ingressgateway-local": (81, ["api-gw-service.local"]),
    "rsyslog-aggregator": (72, ["rsyslog-agg-service"]),
    "cray-tftp": (60, ["tftp-service"]),
    "unbound": (225, ["unbound"]),
    "docker-registry": (73, ["docker_registry_service"]),
}


class IPReservation(object):
    def __init__(self, name, ip, comment="", aliases=None, ip6=None):
        self.name = name
        self.ip = ip
        self.comment = comment
        self.aliases = list(aliases or [])
        self.ip6 = ip6

    def add_alias(self, alias):
        if alias not in self.aliases:
            self.aliases.append(alias)

    def to_sls(self):
        result = {'Name': self.name, 'IPAddress': str(self.ip)}
        if self.ip6 is not None:
            result['IPAddress6'] = str(self.ip6)
        if self.aliases:
            result['Aliases'] = list(self.aliases)
        if self.comment:
            result['Comment'] = self.comment
        return result

    def __repr__(self):
        return "IPReservation(%s, %s)" % (self.name, self.ip)


class Subnet(object):
    """ A block carved out of a network

    network is the allocated block. prefixlen is the advertised prefix length,
    which the supernet hack widens to that of the whole network while the
    block and its reservations stay where they are.
    """
    def __init__(self, name, network, vlan_id=0, gateway=None, full_name="", net_name="", parent_device=""):
        self.name = name
        self.network = network
        self.prefixlen = network.prefixlen
        self.vlan_id = vlan_id
        if gateway is None:
            gateway = network.network_address + 1
        self.gateway = gateway
        self.full_name = full_name
        self.net_name = net_name
        self.parent_device = parent_device
        self.comment = ""
        self.metallb_pool_name = ""
        self.dhcp_start = None
        self.dhcp_end = None
        self.reservation_start = None
        self.reservation_end = None
        self.cidr6 = None
        self.gateway6 = None
        self.reservations = []

    @property
    def cidr(self):
        return "%s/%d" % (self.network.network_address, self.prefixlen)

    @property
    def base(self):
        return self.network.network_address

    def set_network(self, network):
        self.network = network
        self.prefixlen = network.prefixlen

    def set_cidr6(self, cidr6):
        network6 = ipam.parse_network(cidr6)
        self.cidr6 = str(network6)
        self.gateway6 = network6.network_address + 1

    def widen(self, prefixlen, gateway):
        """ Advertise a wider mask and another gateway, leaving the reservations alone """
        self.prefixlen = prefixlen
        self.gateway = gateway

    def reserved_ips(self):
        return [reservation.ip for reservation in self.reservations]

    def _free_ip6(self):
        if self.cidr6 is None:
            return None
        network6 = ipam.parse_network(self.cidr6)
        used = set([reservation.ip6 for reservation in self.reservations])
        candidate = network6.network_address + 2
        while candidate in used:
            candidate += 1
        if candidate not in network6:
            raise AllocationError("no free IPv6 address left in %s" % self.cidr6, context=self.name)
        return candidate

    def add_reservation(self, name, comment=""):
        """ Reserve the first free address above the gateway """
        used = set(self.reserved_ips())
        candidate = self.base + 2
        while candidate in used:
            candidate += 1
        if candidate > ipam.broadcast(self.base, self.prefixlen):
            raise AllocationError("no free address left in %s subnet %s for %s" % (self.name, self.cidr, name),
                                  context=name)
        reservation = IPReservation(name, candidate, comment=comment, ip6=self._free_ip6())
        self.reservations.append(reservation)
        logging.debug("Reserved %s for %s in %s", candidate, name, self.name)
        return reservation

    def add_reservation_with_ip(self, name, addr, comment=""):
        try:
            ip = ipaddress.ip_address(str(addr).strip())
        except ValueError:
            ip = None
        if ip is None or ip not in self.network:
            raise AllocationError('Cannot add "%s" to %s subnet as %s. %s is not part of %s.' %
                                  (name, self.name, addr, addr, self.cidr), context=name)
        reservation = IPReservation(name, ip, comment=comment, ip6=self._free_ip6())
        self.reservations.append(reservation)
        return reservation

    def add_reservation_with_pin(self, name, comment, pin):
        """ Reserve the subnet base address with its last octet replaced by pin

        A non empty comment doubles as the comma separated alias list.
        """
        ip = ipam.with_last_octet(self.base, pin)
        if comment:
            reservation = IPReservation(name, ip, comment=comment, aliases=comment.split(","))
        else:
            reservation = IPReservation(name, ip)
        self.reservations.append(reservation)
        return reservation

    def lookup_reservation(self, name):
        for reservation in self.reservations:
            if reservation.name == name:
                return reservation
        return None

    def reserve_net_mgmt_ips(self, spines, leafs, leafbmcs, cdus):
        for switch_type, xnames in ((mgmtswitches.TYPE_SPINE, spines), (mgmtswitches.TYPE_LEAF, leafs),
                                    (mgmtswitches.TYPE_LEAF_BMC, leafbmcs), (mgmtswitches.TYPE_CDU, cdus)):
            for index, xname in enumerate(xnames):
                self.add_reservation(mgmtswitches.NAME_FORMATS[switch_type] % (index + 1), xname)

    def reserve_edge_switch_ips(self, edges):
        for index, xname in enumerate(edges):
            self.add_reservation("chn-switch-%d" % (index + 1), xname)

    def total_addresses(self):
        return ipam.total_addresses(self.prefixlen, self.network.max_prefixlen)

    def usable_addresses(self):
        return ipam.usable_addresses(self.prefixlen, self.network.max_prefixlen)

    def update_dhcp_range(self, supernet=False):
        """ Move the DHCP (or UAI reservation) range past every reservation """
        if len(self.reservations) > self.usable_addresses():
            raise AllocationError("Could not create %s subnet in %s. There are %d reservations and only %d usable ip addresses in the subnet %s." %
                                  (self.full_name, self.net_name, len(self.reservations),
                                   self.usable_addresses(), self.cidr), context=self.name)

        start = max(self.base + 10, self.base + len(self.reservations) + 2)
        if supernet:
            end = start + 200
        else:
            end = ipam.broadcast(self.base, self.prefixlen) - 1

        if self.name == "uai_macvlan":
            self.reservation_start = start
            self.reservation_end = end
        else:
            self.dhcp_start = start
            self.dhcp_end = end

    def to_sls(self):
        result = {
            'Name': self.name,
            'FullName': self.full_name,
            'CIDR': self.cidr,
            'VlanID': self.vlan_id,
            'Gateway': str(self.gateway),
        }
        optional = (
            ('CIDR6', self.cidr6),
            ('Gateway6', self.gateway6),
            ('DHCPStart', self.dhcp_start),
            ('DHCPEnd', self.dhcp_end),
            ('ReservationStart', self.reservation_start),
            ('ReservationEnd', self.reservation_end),
            ('Comment', self.comment),
            ('MetalLBPoolName', self.metallb_pool_name),
        )
        for key, value in optional:
            if value:
                result[key] = str(value)
        if self.reservations:
            result['IPReservations'] = [reservation.to_sls() for reservation in self.reservations]
        return result

    def __repr__(self):
        return "Subnet(%s, %s, vlan %d)" % (self.name, self.cidr, self.vlan_id)


class Network(object):
    def __init__(self, name, full_name, cidr, vlan_range, mtu=DEFAULT_MTU, net_type="ethernet",
                 comment="", parent_device="", system_default_route=""):
        self.name = name
        self.full_name = full_name
        self.cidr = cidr
        self.cidr6 = None
        self.vlan_range = list(vlan_range)
        self.mtu = mtu
        self.net_type = net_type
        self.comment = comment
        self.parent_device = parent_device
        self.system_default_route = system_default_route
        self.peer_asn = 0
        self.my_asn = 0
        self.subnets = []

    @classmethod
    def from_template(cls, name):
        full_name, cidr, vlan_range, net_type, comment, parent_device = TEMPLATES[name]
        return cls(name, full_name, cidr, vlan_range, net_type=net_type, comment=comment,
                   parent_device=parent_device)

    @property
    def network(self):
        return ipam.parse_network(self.cidr)

    def allocated_subnets(self):
        return [subnet.network for subnet in self.subnets]

    def _append(self, name, block, vlan_id):
        subnet = Subnet(name, block, vlan_id=vlan_id, net_name=self.name)
        self.subnets.append(subnet)
        logging.debug("Added %s subnet %s to %s", name, block, self.name)
        return subnet

    def add_subnet(self, prefixlen, name, vlan_id):
        block = ipam.free_subnet(self.network, prefixlen, self.allocated_subnets())
        return self._append(name, block, vlan_id)

    def add_subnet_by_cidr(self, cidr, name, vlan_id):
        block = ipam.parse_network(cidr)
        if not block.subnet_of(self.network):
            raise AllocationError("subnet %s is not part of %s" % (block, self.network), context=name)
        return self._append(name, block, vlan_id)

    def add_biggest_subnet(self, prefixlen, name, vlan_id):
        """ Largest block available, trying the requested size first and shrinking to a /28 """
        for size in range(prefixlen, ipam.SMALLEST_BIGGEST_PREFIX + 1):
            try:
                return self.add_subnet(size, name, vlan_id)
            except AllocationError:
                continue
        raise AllocationError("no room for %s subnet within %s (tried from /%d to /29)" %
                              (name, self.name, prefixlen), context=name)

    def lookup_subnet(self, name):
        found = [subnet for subnet in self.subnets if subnet.name == name]
        if not found:
            raise SubnetNotFound('subnet not found "%s"' % name, context=name)
        if len(found) > 1:
            raise AllocationError("found %d subnets instead of just one" % len(found), context=name)
        return found[0]

    def has_subnet(self, name):
        return len([subnet for subnet in self.subnets if subnet.name == name]) > 0

    def gen_subnets(self, groups, prefixlen, cabinet_filter):
        """ One cabinet_<id> subnet for every cabinet matching cabinet_filter """
        added = []
        for group in groups:
            for index, detail in enumerate(group.cabinets):
                if not cabinet_filter(group, detail):
                    continue
                vlan_id = 0
                explicit = None
                if self.name.startswith("NMN"):
                    vlan_id = detail.nmn_vlan
                    explicit = detail.nmn_subnet
                elif self.name.startswith("HMN"):
                    vlan_id = detail.hmn_vlan
                    explicit = detail.hmn_subnet
                if not vlan_id:
                    vlan_id = index + self.vlan_range[0]

                name = "cabinet_%d" % detail.id
                if explicit:
                    subnet = self.add_subnet_by_cidr(explicit, name, vlan_id)
                else:
                    subnet = self.add_subnet(prefixlen, name, vlan_id)
                subnet.update_dhcp_range(False)
                added.append(subnet)

        vlans = [subnet.vlan_id for subnet in self.subnets if subnet.name.startswith("cabinet_")]
        if vlans:
            self.vlan_range = [min(vlans), max(vlans)]
        return added

    def apply_supernet_hack(self):
        supernet = self.network
        for name in SUPERNET_SUBNETS:
            try:
                subnet = self.lookup_subnet(name)
            except SubnetNotFound:
                continue
            subnet.widen(supernet.prefixlen, supernet.network_address + 1)
            logging.debug("Supernet hack on %s %s: %s gateway %s", self.name, name, subnet.cidr, subnet.gateway)

    def reservations(self):
        """ Every reservation of every subnet as (subnet, reservation) pairs """
        for subnet in self.subnets:
            for reservation in subnet.reservations:
                yield subnet, reservation

    def to_sls(self):
        extra = {
            'CIDR': self.cidr,
            'VlanRange': list(self.vlan_range),
            'MTU': self.mtu,
            'Subnets': [subnet.to_sls() for subnet in self.subnets],
        }
        optional = (
            ('CIDR6', self.cidr6),
            ('Comment', self.comment),
            ('PeerASN', self.peer_asn),
            ('MyASN', self.my_asn),
            ('SystemDefaultRoute', self.system_default_route),
        )
        for key, value in optional:
            if value:
                extra[key] = value
        return {
            'Name': self.name,
            'FullName': self.full_name,
            'IPRanges': [self.cidr],
            'Type': self.net_type,
            'ExtraProperties': extra,
        }

    def __repr__(self):
        return "Network(%s, %s, %d subnets)" % (self.name, self.cidr, len(self.subnets))


class NetworkConfig(object):
    """ Every recognized network option with its default

    Keys use the hyphenated command line style names, for example
    'can-cidr' or 'nmn-bootstrap-vlan'.  Unknown keys are rejected.
    """
    defaults = {
        'nmn-cidr': DEFAULT_NMN,
        'nmn-dynamic-pool': DEFAULT_NMNLB,
        'nmn-mtn-cidr': DEFAULT_NMN_MTN,
        'nmn-rvr-cidr': DEFAULT_NMN_RVR,
        'hmn-cidr': DEFAULT_HMN,
        'hmn-dynamic-pool': DEFAULT_HMNLB,
        'hmn-mtn-cidr': DEFAULT_HMN_MTN,
        'hmn-rvr-cidr': DEFAULT_HMN_RVR,
        'can-cidr': "",
        'can-gateway': "",
        'can-static-pool': "",
        'can-dynamic-pool': "",
        'chn-cidr': "",
        'chn-gateway': "",
        'chn-static-pool': "",
        'chn-dynamic-pool': "",
        'cmn-cidr': DEFAULT_CMN,
        'cmn-gateway': "",
        'cmn-static-pool': "",
        'cmn-dynamic-pool': "",
        'cmn-external-dns': "",
        'mtl-cidr': DEFAULT_MTL,
        'hsn-cidr': DEFAULT_HSN,
        'supernet': True,
        'management-net-ips': 0,
        'can-bootstrap-vlan': 6,
        'cmn-bootstrap-vlan': 7,
        'chn-bootstrap-vlan': 5,
        'hmn-bootstrap-vlan': 4,
        'nmn-bootstrap-vlan': 2,
        'mtl-bootstrap-vlan': None,
        'hsn-bootstrap-vlan': None,
        'bican-bootstrap-vlan': None,
        'nmn-mtn-bootstrap-vlan': None,
        'nmn-rvr-bootstrap-vlan': None,
        'hmn-mtn-bootstrap-vlan': None,
        'hmn-rvr-bootstrap-vlan': None,
        'bgp-asn': 65533,
        'bgp-cmn-asn': 65532,
        'bgp-nmn-asn': 65531,
        'bgp-chn-asn': 65530,
        'bican-user-network-name': "CAN",
        'retain-unused-user-network': False,
        'nmn-cidr6': None,
        'hmn-cidr6': None,
        'cmn-cidr6': None,
        'can-cidr6': None,
        'chn-cidr6': None,
        'mtl-cidr6': None,
    }

    def __init__(self, settings=None):
        settings = settings or {}
        for key in settings:
            if key not in self.defaults:
                raise UnknownSetting("unknown network setting: %s" % key, context=key)
        self.settings = dict(self.defaults)
        self.settings.update(settings)

    def get(self, key):
        try:
            return self.settings[key]
        except KeyError:
            raise UnknownSetting("unknown network setting: %s" % key, context=key)

    def is_set(self, key):
        value = self.settings.get(key)
        return value is not None and value != ""

    def bootstrap_vlan(self, name):
        key = "%s-bootstrap-vlan" % option_name(name)
        if self.is_set(key):
            return int(self.get(key))
        return None


def option_name(name):
    """ HMN_MTN -> hmn-mtn """
    return name.lower().replace("_", "-")


class NetworkLayout(object):
    """ How a network template is carved up """
    def __init__(self, template, include_bootstrap_dhcp=False, bootstrap_prefixlen=DEFAULT_BOOTSTRAP_PREFIX,
                 include_hardware_subnet=False, hardware_prefixlen=DEFAULT_HARDWARE_PREFIX,
                 supernet_hack=False, subdivide_by_cabinet=False, group_by_cabinet_type=False,
                 include_uai_subnet=False, cabinet_prefixlen=DEFAULT_CABINET_PREFIX):
        self.template = template
        self.include_bootstrap_dhcp = include_bootstrap_dhcp
        self.bootstrap_prefixlen = bootstrap_prefixlen
        self.include_hardware_subnet = include_hardware_subnet
        self.hardware_prefixlen = hardware_prefixlen
        self.supernet_hack = supernet_hack
        self.subdivide_by_cabinet = subdivide_by_cabinet
        self.group_by_cabinet_type = group_by_cabinet_type
        self.include_uai_subnet = include_uai_subnet
        self.cabinet_prefixlen = cabinet_prefixlen
        self.base_vlan = template.vlan_range[0] if template.vlan_range else 0

    def __repr__(self):
        return "NetworkLayout(%s)" % self.template.name


def _management_layout(name, uai=False):
    return NetworkLayout(Network.from_template(name), include_bootstrap_dhcp=True,
                         include_hardware_subnet=True, supernet_hack=True,
                         group_by_cabinet_type=True, include_uai_subnet=uai)

def _cabinet_layout(name):
    return NetworkLayout(Network.from_template(name), subdivide_by_cabinet=True, group_by_cabinet_type=True)

def default_layouts(config, cabinet_groups, switch_count=0, ncn_count=0):
    """ Layouts of every network the system needs, keyed by network name """
    classes = set([group.cabinet_class for group in cabinet_groups if group.cabinets])
    bican = config.get('bican-user-network-name')
    retain = config.get('retain-unused-user-network')

    bican_net = Network.from_template('BICAN')
    bican_net.system_default_route = bican

    cmn_network = Network.from_template('CMN')
    layouts = {
        'BICAN': NetworkLayout(bican_net),
        'CMN': NetworkLayout(cmn_network, include_bootstrap_dhcp=True,
                             bootstrap_prefixlen=ipam.subnet_within(ncn_count),
                             include_hardware_subnet=True,
                             hardware_prefixlen=ipam.subnet_within(switch_count + int(config.get('management-net-ips'))),
                             supernet_hack=True),
        'HMN': _management_layout('HMN'),
        'HSN': NetworkLayout(Network.from_template('HSN')),
        'MTL': NetworkLayout(Network.from_template('MTL'), include_bootstrap_dhcp=True,
                             include_hardware_subnet=True, supernet_hack=True),
        'NMN': _management_layout('NMN', uai=True),
    }
    if bican == "CAN" or retain:
        layouts['CAN'] = NetworkLayout(Network.from_template('CAN'), include_bootstrap_dhcp=True)
    if bican == "CHN" or retain:
        layouts['CHN'] = NetworkLayout(Network.from_template('CHN'), include_bootstrap_dhcp=True)

    if cabinets.CLASS_MOUNTAIN in classes or cabinets.CLASS_HILL in classes:
        layouts['HMN_MTN'] = _cabinet_layout('HMN_MTN')
        layouts['NMN_MTN'] = _cabinet_layout('NMN_MTN')
    if cabinets.CLASS_RIVER in classes:
        layouts['HMN_RVR'] = _cabinet_layout('HMN_RVR')
        layouts['NMN_RVR'] = _cabinet_layout('NMN_RVR')
    return layouts

def apply_overrides(layouts, config, registry=None):
    """ Bootstrap VLAN and CIDR overrides, registering every VLAN on the way """
    if registry is None:
        registry = ipam.VlanRegistry()
    for name in sorted(layouts):
        layout = layouts[name]
        template = layout.template
        base_vlan = config.bootstrap_vlan(name)
        if base_vlan is not None:
            layout.base_vlan = base_vlan
            template.vlan_range[0] = base_vlan
        else:
            layout.base_vlan = template.vlan_range[0]

        if len(template.vlan_range) == 2:
            registry.allocate_range(template.vlan_range[0], template.vlan_range[1], owner=name)
            logging.info("Allocating VLANs %s %d %d", name, template.vlan_range[0], template.vlan_range[1])
        else:
            registry.allocate(template.vlan_range[0], owner=name)
            logging.info("Allocating VLAN %s %d", name, template.vlan_range[0])

        key = "%s-cidr" % option_name(name)
        if key in config.defaults and config.is_set(key):
            template.cidr = config.get(key)
    return registry

def _switch_xnames(switches, switch_type):
    return [switch.xname for switch in switches if switch.switch_type == switch_type]

def _add_metallb_pools(net, config):
    lower = option_name(net.name)
    vlan = config.bootstrap_vlan(net.name)
    for kind, subnet_name, full_name, pool_name in METALLB_POOLS[net.name]:
        key = "%s-%s-pool" % (lower, kind)
        value = config.get(key)
        if not value:
            logging.info("No %s given, not creating %s", key, subnet_name)
            continue
        try:
            block = ipaddress.ip_network(value, strict=False)
        except ValueError:
            logging.warning("IP Addressing Failure: invalid %s %s, not creating it", key, value)
            continue
        try:
            pool = net.add_subnet_by_cidr(block, subnet_name, vlan)
        except AllocationError as e:
            raise AllocationError("Couldn't add MetalLB %s pool of %s to net %s: %s" % (kind, value, net.cidr, e),
                                  context=key)
        pool.full_name = full_name
        pool.metallb_pool_name = pool_name
        if net.name == "CMN" and kind == "static":
            pool.add_reservation_with_ip("external-dns", config.get('cmn-external-dns'), "site to system lookups")

def _user_gateway(config, lower):
    gateway = config.get("%s-gateway" % lower)
    if not gateway:
        raise ConfigurationError("%s-gateway is required when %s-cidr is set" % (lower, lower), context=lower)
    return ipaddress.ip_address(gateway)

def build_network(layout, config, cabinet_groups, switches):
    """ Populate one network from its layout """
    net = layout.template
    name = net.name
    lower = option_name(name)
    bootstrap_prefixlen = layout.bootstrap_prefixlen
    user_cidr = None

    if name in METALLB_POOLS and config.is_set("%s-cidr" % lower):
        user_cidr = ipam.parse_network(config.get("%s-cidr" % lower))
        bootstrap_prefixlen = user_cidr.prefixlen
        _add_metallb_pools(net, config)

    if name == "HSN":
        try:
            block = ipaddress.ip_network(config.get('hsn-cidr'), strict=False)
        except ValueError:
            logging.warning("IP Addressing Failure: invalid hsn-cidr, not creating hsn_base_subnet")
        else:
            subnet = net.add_subnet_by_cidr(block, "hsn_base_subnet", TEMPLATES['HSN'][2][0])
            subnet.full_name = "HSN Base Subnet"

    if layout.include_hardware_subnet:
        try:
            hardware = net.add_subnet(layout.hardware_prefixlen, "network_hardware", layout.base_vlan)
        except AllocationError as e:
            raise AllocationError("unable to add network hardware subnet to %s because %s" % (name, e), context=name)
        hardware.full_name = "%s Management Network Infrastructure" % name
        hardware.reserve_net_mgmt_ips(_switch_xnames(switches, mgmtswitches.TYPE_SPINE),
                                      _switch_xnames(switches, mgmtswitches.TYPE_LEAF),
                                      _switch_xnames(switches, mgmtswitches.TYPE_LEAF_BMC),
                                      _switch_xnames(switches, mgmtswitches.TYPE_CDU))

    if layout.include_bootstrap_dhcp and config.is_set("%s-cidr" % lower):
        try:
            subnet = net.add_biggest_subnet(bootstrap_prefixlen, "bootstrap_dhcp", layout.base_vlan)
        except AllocationError as e:
            raise AllocationError("unable to add bootstrap_dhcp subnet to %s because %s" % (name, e), context=name)
        subnet.full_name = "%s Bootstrap DHCP Subnet" % name
        subnet.parent_device = net.parent_device
        if config.is_set("%s-cidr6" % lower):
            net.cidr6 = config.get("%s-cidr6" % lower)
            subnet.set_cidr6(net.cidr6)
        if name in ("NMN", "HMN", "CMN", "CAN", "CHN"):
            if name == "CAN":
                subnet.set_network(user_cidr)
                subnet.gateway = _user_gateway(config, lower)
                subnet.add_reservation("can-switch-1", "")
                subnet.add_reservation("can-switch-2", "")
            elif name == "CHN":
                subnet.set_network(user_cidr)
                subnet.gateway = _user_gateway(config, lower)
                subnet.reserve_edge_switch_ips(_switch_xnames(switches, mgmtswitches.TYPE_EDGE))
            subnet.add_reservation("kubeapi-vip", "k8s-virtual-ip")
            if name == "NMN":
                subnet.add_reservation("rgw-vip", "rgw-virtual-ip")

    asn_key = "bgp-%s-asn" % lower
    if asn_key in config.defaults and config.is_set(asn_key):
        net.peer_asn = int(config.get('bgp-asn'))
        net.my_asn = int(config.get(asn_key))

    if layout.include_uai_subnet:
        uai = net.add_subnet(UAI_PREFIX, "uai_macvlan", config.bootstrap_vlan("NMN"))
        uai.gateway = net.network.network_address + 1
        uai.full_name = "NMN UAIs"
        for reservation_name in sorted(UAI_RESERVATIONS):
            aliases = UAI_RESERVATIONS[reservation_name]
            reservation = uai.add_reservation(reservation_name, ",".join(aliases))
            for alias in aliases:
                reservation.add_alias(alias)

    if layout.subdivide_by_cabinet:
        prefixlen = layout.cabinet_prefixlen
        if layout.group_by_cabinet_type:
            if name.endswith("RVR"):
                net.gen_subnets(cabinet_groups, prefixlen, cabinets.or_filter(
                    cabinets.class_filter(cabinets.CLASS_RIVER),
                    cabinets.and_filter(cabinets.kind_filter(cabinets.KIND_EX2500),
                                        cabinets.air_cooled_count_filter(1))))
            if name.endswith("MTN"):
                net.gen_subnets(cabinet_groups, prefixlen, cabinets.class_filter(cabinets.CLASS_MOUNTAIN))
                net.gen_subnets(cabinet_groups, prefixlen, cabinets.class_filter(cabinets.CLASS_HILL))
        else:
            for cabinet_class in cabinets.CLASSES:
                net.gen_subnets(cabinet_groups, prefixlen, cabinets.class_filter(cabinet_class))

    if layout.supernet_hack:
        net.apply_supernet_hack()

    logging.info("Built network %s with %d subnets", name, len(net.subnets))
    return net

def _load_balancer(name, config, pool_name, vlan, full_name, metallb_name, skip=(), blank=()):
    net = Network.from_template(name)
    key = "%s-dynamic-pool" % name[:3].lower()
    if config.is_set(key):
        net.cidr = config.get(key)
    pool = net.add_subnet(LB_POOL_PREFIX, pool_name, vlan)
    pool.full_name = full_name
    pool.metallb_pool_name = metallb_name
    for reservation_name in sorted(PINNED_METALLB_RESERVATIONS):
        if reservation_name in skip:
            continue
        octet, aliases = PINNED_METALLB_RESERVATIONS[reservation_name]
        comment = "" if reservation_name in blank else ",".join(aliases)
        pool.add_reservation_with_pin(reservation_name, comment, octet)
    return net

def build_networks(config, cabinet_groups, switches, ncn_count=0):
    """ Every network of the system, keyed by name """
    layouts = default_layouts(config, cabinet_groups, switch_count=len(switches), ncn_count=ncn_count)
    apply_overrides(layouts, config)

    networks = dict()
    for name in sorted(layouts):
        if name == "CHN" and not config.is_set('chn-cidr'):
            logging.info("No CHN Network definition provided")
            continue
        networks[name] = build_network(layouts[name], config, cabinet_groups, switches)

    networks['NMNLB'] = _load_balancer('NMNLB', config, "nmn_metallb_address_pool",
                                       config.bootstrap_vlan("NMN"), "NMN MetalLB", "node-management")
    networks['HMNLB'] = _load_balancer('HMNLB', config, "hmn_metallb_address_pool",
                                       config.bootstrap_vlan("HMN"), "HMN MetalLB", "hardware-management",
                                       skip=("istio-ingressgateway-local",), blank=("istio-ingressgateway",))
    return networks

def _uan_nodes(hardware):
    uans = []
    for xname in sorted(hardware):
        entry = hardware[xname]
        if isinstance(entry.props, NodeProps) and entry.props.role == "Application" and entry.props.subrole == "UAN":
            uans.append(entry)
    return uans

def _pool_start(config, lower):
    """ First address of the lowest MetalLB pool, or the network broadcast when there is none """
    starts = []
    for kind in ("static", "dynamic"):
        value = config.get("%s-%s-pool" % (lower, kind))
        if value:
            starts.append(ipam.parse_network(value).network_address)
    if starts:
        return min(starts)
    return ipam.parse_network(config.get("%s-cidr" % lower)).broadcast_address

def finalize_networks(networks, hardware, config):
    """ Reservations and DHCP ranges that depend on the generated hardware """
    uans = _uan_nodes(hardware)
    for name in ("CAN", "CHN"):
        if name not in networks or not networks[name].has_subnet("bootstrap_dhcp"):
            continue
        subnet = networks[name].lookup_subnet("bootstrap_dhcp")
        for uan in uans:
            if not uan.props.aliases:
                raise InvalidApplicationNodeConfig("UANs must have at least one alias defined in the application node config: %s" %
                                                   uan.xname, context=uan.xname)
            subnet.add_reservation(uan.props.aliases[0], uan.xname)

    for name in MAIN_NETWORKS:
        if name not in networks:
            continue
        net = networks[name]
        if net.has_subnet("bootstrap_dhcp"):
            subnet = net.lookup_subnet("bootstrap_dhcp")
            if name in ("CAN", "CMN", "CHN"):
                lower = option_name(name)
                subnet.update_dhcp_range(False)
                if config.is_set("%s-cidr" % lower):
                    pool_start = _pool_start(config, lower)
                    if subnet.gateway == pool_start - 1:
                        subnet.dhcp_end = pool_start - 2
                    else:
                        subnet.dhcp_end = pool_start - 1
            else:
                subnet.update_dhcp_range(config.get('supernet'))

        if name == "NMN":
            net.lookup_subnet("uai_macvlan").update_dhcp_range(False)
    return networks
