#!/usr/bin/env python3
"""Hardware synthesis and SLS state assembly"""
# vim: tabstop=4 expandtab shiftwidth=4 softtabstop=4

import logging
import itertools
import re

from slsgen import xname as xnames
from slsgen import cabinet as cabinets
from slsgen import switches as mgmtswitches
from slsgen.hardware import GenericHardware, CabinetProps, NodeProps, RouterBMCProps
from slsgen.hardware import MgmtSwitchConnectorProps, vault_path
from slsgen.network import NetworkConfig, build_networks, finalize_networks
from slsgen.rows import normalize_rack, normalize_location, normalize_port, half_bmc
from slsgen.errors import MalformedRowField, MissingSwitch, InvalidSwitch, UnknownSwitchType

MANAGEMENT_STARTING_NID = 100001
DEFAULT_MOUNTAIN_STARTING_NID = 1000

# Node BMC ordinal used for the CMC of a multi node enclosure
CMC_BMC = 999
NODES_PER_ENCLOSURE = 4

SLOTS_PER_CHASSIS = 8
BMCS_PER_SLOT = 2
NODES_PER_BMC = 2

_pdu_re = re.compile(r'(x\d+p|pdu)(\d+)')
_nid_re = re.compile(r'(\d+)$')

# Switches are listed in the switch inventory, cabling rows for them are ignored
IGNORED_SWITCH_PREFIXES = ("sw-leaf", "sw-25g", "sw-40g", "sw-leaf-bmc", "sw-agg", "sw-smn")

# Source prefix, subrole and alias format of management nodes
MANAGEMENT_NODES = [
    ("mn", "Master", "ncn-m%03d"),
    ("wn", "Worker", "ncn-w%03d"),
    ("sn", "Storage", "ncn-s%03d"),
]
FABRIC_MANAGER = ("fmn", "FabricManager", "fmn%03d")


def _suffix_index(source, prefix):
    try:
        return int(source[len(prefix):])
    except ValueError:
        raise MalformedRowField("failed to parse index number of %s" % source, context=source)

def _enclosure_bmc(nid):
    """ BMC ordinal of a node sharing an enclosure, 1 through 4 """
    if nid <= 0:
        return 0
    return ((nid - 1) % NODES_PER_ENCLOSURE) + 1

def vendor_port_name(brand, port):
    if brand == mgmtswitches.BRAND_DELL:
        return "ethernet1/1/%d" % port
    return "1/1/%d" % port

def is_ncn_source(source):
    source = source.strip().lower()
    return any([source.startswith(prefix) for prefix, _, _ in MANAGEMENT_NODES])


class StateGenerator(object):
    """ Builds the hardware map from the cabinet model, the switches and the cabling rows

    River hardware comes from the cabling rows, liquid cooled hardware is
    enumerated from the Hill and Mountain cabinets.
    """
    def __init__(self, cabinet_model, switch_hardware, app_config, rows,
                 mountain_starting_nid=DEFAULT_MOUNTAIN_STARTING_NID, fabric_manager_nodes=False):
        self.cabinets = cabinet_model
        self.switches = dict(switch_hardware)
        self.app_config = app_config
        self.rows = list(rows)
        self.mountain_starting_nid = mountain_starting_nid
        self.fabric_manager_nodes = fabric_manager_nodes
        self.management_nids = itertools.count(MANAGEMENT_STARTING_NID)
        self.node_parents = dict()

    def validate_switches(self):
        """ River management switches must sit in cabinets that hold air cooled hardware """
        for xname in sorted(self.switches, key=xnames.sort_key):
            switch = self.switches[xname]
            if switch.hclass != cabinets.CLASS_RIVER:
                continue
            if switch.type_string == xnames.MGMT_SWITCH:
                cab = xnames.parent_of(switch.parent)
            elif switch.type_string == xnames.MGMT_HL_SWITCH:
                cab = xnames.parent_of(xnames.parent_of(switch.parent))
            else:
                raise UnknownSwitchType("unknown river management switch type %s for %s" %
                                        (switch.type_string, xname), context=xname)
            self.cabinets.can_contain_air_cooled(cab)

    def find_row(self, source):
        source = source.strip().lower()
        for row in self.rows:
            if row.source_lower == source:
                return row
        return None

    def river_chassis(self, cabinet_number):
        return self.cabinets.river_chassis_for(xnames.cabinet(cabinet_number))

    def hardware_from_row(self, row):
        """ Returns the hardware described by a cabling row or None when the row is skipped """
        source = row.source_lower

        if source == "columbia" or source.startswith("sw-hsn"):
            return self.router_bmc_from_row(row)

        match = _pdu_re.search(source)
        if match:
            return self.pdu_from_row(row, int(match.group(2)))

        if "door" in source:
            logging.warning("Cooling door found, but xname does not yet exist for cooling doors: %s", row)
            return None

        if source.startswith(IGNORED_SWITCH_PREFIXES):
            logging.warning("Ignoring management switch %s found in cabling rows, switches come from the switch metadata",
                            row.source)
            return None

        return self.node_from_row(row)

    def router_bmc_from_row(self, row):
        chassis = self.river_chassis(row.source_cabinet())
        u, hint = normalize_location(row.source_location)
        bmc = half_bmc(row.source_sublocation, hint)
        xname = "%sr%db%d" % (chassis, u, bmc)
        return GenericHardware(xname, cabinets.CLASS_RIVER,
                               RouterBMCProps(username=vault_path(xname), password=vault_path(xname)))

    def pdu_from_row(self, row, pdu):
        return GenericHardware("x%dm%d" % (row.source_cabinet(), pdu), cabinets.CLASS_RIVER)

    def node_props_from_row(self, row):
        """ Role, subrole, NID and aliases of a node row, None for an unknown source """
        source = row.source_lower

        for prefix, subrole, alias in MANAGEMENT_NODES:
            if source.startswith(prefix):
                index = _suffix_index(source, prefix)
                return NodeProps(nid=next(self.management_nids), role="Management", subrole=subrole,
                                 aliases=[alias % index])

        prefix, subrole, alias = FABRIC_MANAGER
        if source.startswith(prefix):
            if not self.fabric_manager_nodes:
                logging.info("Skipping FabricManager node %s, fabric_manager_nodes is not enabled", row.source)
                return None
            index = _suffix_index(source, prefix)
            return NodeProps(nid=next(self.management_nids), role="Management", subrole=subrole,
                             aliases=[alias % index])

        if source.startswith("nid") or source.startswith("cn"):
            match = _nid_re.search(row.source.strip())
            if not match:
                raise MalformedRowField("did not find a NID number in %s" % row.source, context=row.to_dict())
            nid = int(match.group(1))
            return NodeProps(nid=nid, role="Compute", aliases=["nid%06d" % nid])

        subrole = self.app_config.match(source)
        if subrole is not None:
            return NodeProps(role="Application", subrole=subrole)

        if "cmc" in source:
            return NodeProps(role="System")

        logging.warning("Found unknown source prefix %s! If this is expected to be an Application node, "
                        "please update application_node_config.yaml", row.source)
        return None

    def parent_u(self, row):
        """ Rack U of the enclosure a row belongs to, looked up once per parent """
        parent = row.source_parent.strip()
        u = self.node_parents.get(parent, -1)
        if u != -1:
            return u
        parent_row = self.find_row(parent)
        if parent_row is None:
            raise MalformedRowField("failed to find matching row for parent %s" % parent, context=row.to_dict())
        u, _ = normalize_location(parent_row.source_location)
        self.node_parents[parent] = u
        return u

    def node_from_row(self, row):
        props = self.node_props_from_row(row)
        if props is None:
            return None

        if row.has_parent:
            u = self.parent_u(row)
            bmc = _enclosure_bmc(props.nid or 0)
        else:
            u, hint = normalize_location(row.source_location)
            bmc = half_bmc(row.source_sublocation, hint)

        chassis = self.river_chassis(row.source_cabinet())

        # An enclosure parent is its CMC rather than a node
        if row.source.strip() in self.node_parents:
            return GenericHardware("%ss%db%d" % (chassis, u, CMC_BMC), cabinets.CLASS_RIVER)

        xname = "%ss%db%dn0" % (chassis, u, bmc)
        if props.role == "Application":
            props.aliases = self.app_config.aliases_for(xname)
        return GenericHardware(xname, cabinets.CLASS_RIVER, props)

    def connector_for(self, hardware, row):
        """ MgmtSwitchConnector linking hardware to the switch port of a cabling row """
        if hardware.type_string in xnames.CONTROLLER_TYPES:
            nic = hardware.xname
        else:
            nic = hardware.parent

        chassis = self.river_chassis(normalize_rack(row.destination_rack))
        u, _ = normalize_location(row.destination_location)
        port = normalize_port(row.destination_port)
        switch_xname = "%sw%d" % (chassis, u)
        connector = "%sj%d" % (switch_xname, port)

        switch = self.switches.get(switch_xname)
        if switch is None:
            raise MissingSwitch("unable to find management switch %s for %s (%s)" % (switch_xname, connector, nic),
                                context=switch_xname)
        brand = getattr(switch.props, 'brand', None)
        if not brand:
            raise InvalidSwitch("management switch brand not provided for switch %s" % switch_xname,
                                context=switch_xname)

        return GenericHardware(connector, cabinets.CLASS_RIVER,
                               MgmtSwitchConnectorProps(node_nics=[nic], vendor_name=vendor_port_name(brand, port)))

    def cabinet_hardware(self, cab):
        return GenericHardware(cab.xname, cab.cabinet_class, CabinetProps(networks=cab.networks, model=cab.model))

    def liquid_cooled_hardware(self, cab, nids):
        """ Cabinet, chassis, chassis BMCs and compute nodes of a liquid cooled cabinet """
        hardware = [self.cabinet_hardware(cab)]
        for chassis_ordinal in cab.liquid_cooled_chassis:
            chassis = xnames.child(cab.xname, 'c', chassis_ordinal)
            hardware.append(GenericHardware(chassis, cab.cabinet_class))
            hardware.append(GenericHardware(xnames.child(chassis, 'b', 0), cab.cabinet_class))
            for slot in range(SLOTS_PER_CHASSIS):
                for bmc in range(BMCS_PER_SLOT):
                    for node in range(NODES_PER_BMC):
                        nid = next(nids)
                        xname = "%ss%db%dn%d" % (chassis, slot, bmc, node)
                        hardware.append(GenericHardware(xname, cab.cabinet_class,
                                                        NodeProps(nid=nid, role="Compute", aliases=["nid%06d" % nid])))
        return hardware

    def build_hardware(self):
        """ The complete hardware map keyed by xname """
        self.validate_switches()

        cabinet_map = dict()
        for xname in self.cabinets.sorted_xnames(cabinets.CLASS_RIVER):
            cabinet_map[xname] = self.cabinet_hardware(self.cabinets.get(xname))

        self.node_parents = dict([(row.source_parent.strip(), -1) for row in self.rows if row.has_parent])

        node_map = dict()
        connector_map = dict()
        for row in self.rows:
            hardware = self.hardware_from_row(row)
            if hardware is None:
                logging.debug("Found empty hardware, ignoring %s", row)
                continue

            self.cabinets.can_contain_air_cooled(xnames.cabinet(row.source_cabinet()))
            node_map[hardware.xname] = hardware

            if row.is_cabled:
                connector = self.connector_for(hardware, row)
                if connector.xname in connector_map:
                    logging.debug("Connector %s is cabled more than once, keeping %s", connector.xname, row.source)
                connector_map[connector.xname] = connector

        nids = itertools.count(self.mountain_starting_nid)
        for cabinet_class in (cabinets.CLASS_HILL, cabinets.CLASS_MOUNTAIN):
            for xname in self.cabinets.sorted_xnames(cabinet_class):
                for hardware in self.liquid_cooled_hardware(self.cabinets.get(xname), nids):
                    node_map[hardware.xname] = hardware

        result = dict()
        for part in (cabinet_map, node_map, connector_map, self.switches):
            result.update(part)
        logging.info("Generated %d hardware entries", len(result))
        return result


class GeneratorInputs(object):
    """ Everything read from the seed files """
    def __init__(self, rows, switch_metadata, cabinet_groups, app_config):
        self.rows = list(rows)
        self.switch_metadata = list(switch_metadata)
        self.cabinet_groups = list(cabinet_groups)
        self.app_config = app_config

    def validate(self):
        self.app_config.normalize()
        self.app_config.validate()
        for switch in self.switch_metadata:
            switch.normalize()
            switch.validate()
        for group in self.cabinet_groups:
            group.populate_ids()

    def ncn_count(self):
        return len([row for row in self.rows if is_ncn_source(row.source)])


class SLSState(object):
    def __init__(self, hardware, networks):
        self.hardware = hardware
        self.networks = networks

    def hardware_dict(self, xname_filter=None):
        result = dict()
        for xname in sorted(self.hardware, key=xnames.sort_key):
            if xname_filter is not None and not xname_filter(xname):
                continue
            result[xname] = self.hardware[xname].to_dict()
        return result

    def networks_dict(self, names=None):
        result = dict()
        for name in sorted(self.networks):
            if names and name not in names:
                continue
            result[name] = self.networks[name].to_sls()
        return result

    def to_dict(self):
        return {
            'Hardware': self.hardware_dict(),
            'Networks': self.networks_dict(),
        }


def generate_state(inputs, settings=None):
    """ Run the full pipeline from seed inputs to an SLSState """
    settings = settings or {}
    inputs.validate()

    config = NetworkConfig(settings.get('networks'))
    networks = build_networks(config, inputs.cabinet_groups, inputs.switch_metadata, ncn_count=inputs.ncn_count())

    switch_hardware = dict()
    for switch in mgmtswitches.extract_switches(networks, inputs.switch_metadata):
        hardware = mgmtswitches.to_hardware(switch)
        switch_hardware[hardware.xname] = hardware

    model = cabinets.build_cabinet_model(inputs.cabinet_groups, networks)
    generator = StateGenerator(model, switch_hardware, inputs.app_config, inputs.rows,
                               mountain_starting_nid=int(settings.get('mountain_starting_nid',
                                                                      DEFAULT_MOUNTAIN_STARTING_NID)),
                               fabric_manager_nodes=bool(settings.get('fabric_manager_nodes', False)))
    hardware = generator.build_hardware()

    finalize_networks(networks, hardware, config)
    return SLSState(hardware, networks)
