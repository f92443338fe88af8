#!/usr/bin/env python3
"""Shared cabling scenario: two River, five Hill and one Mountain cabinet"""
# vim: tabstop=4 expandtab shiftwidth=4 softtabstop=4

import pytest

from slsgen.system import System
from slsgen.rows import HMNRow
from slsgen.appnode import ApplicationNodeConfig
from slsgen.switches import ManagementSwitch, TYPE_LEAF_BMC, to_hardware
from slsgen.cabinet import CabinetGroupDetail, build_cabinet_model
from slsgen.generator import StateGenerator, GeneratorInputs

HMN_CONNECTIONS = [
    {"Source": "mn01", "SourceRack": "x3000", "SourceLocation": "u01",
     "DestinationRack": "x3000", "DestinationLocation": "u22", "DestinationPort": "p25"},
    {"Source": "wn01", "SourceRack": "x3000", "SourceLocation": "u07"},
    {"Source": "wn02", "SourceRack": "x3000", "SourceLocation": "u09",
     "DestinationRack": "x3000", "DestinationLocation": "u22", "DestinationPort": "p28"},
    {"Source": "sn01", "SourceRack": "x3000", "SourceLocation": "u13",
     "DestinationRack": "x3000", "DestinationLocation": "u22", "DestinationPort": "p30"},
    {"Source": "nid000001", "SourceRack": "x3000", "SourceLocation": "u19", "SourceSubLocation": "R",
     "SourceParent": "SubRack-001-cmc",
     "DestinationRack": "x3000", "DestinationLocation": "u22", "DestinationPort": "p33"},
    {"Source": "nid000002", "SourceRack": "x3000", "SourceLocation": "U19", "SourceSubLocation": "L",
     "SourceParent": "SubRack-001-cmc",
     "DestinationRack": "x3000", "DestinationLocation": "u22", "DestinationPort": "p34"},
    {"Source": "cn-03", "SourceRack": "x3000", "SourceLocation": "u20", "SourceSubLocation": "R",
     "SourceParent": "SubRack-001-cmc",
     "DestinationRack": "x3000", "DestinationLocation": "u22", "DestinationPort": "p35"},
    {"Source": "cn04", "SourceRack": "x3000", "SourceLocation": "u20", "SourceSubLocation": "L",
     "SourceParent": "SubRack-001-cmc",
     "DestinationRack": "x3000", "DestinationLocation": "u22", "DestinationPort": "p36"},
    {"Source": "nid000005", "SourceRack": "x3000", "SourceLocation": "u21", "SourceSubLocation": "R",
     "SourceParent": "SubRack-002-cmc",
     "DestinationRack": "x3001", "DestinationLocation": "u21", "DestinationPort": "p21"},
    {"Source": "SubRack-001-cmc", "SourceRack": "x3000", "SourceLocation": "u19",
     "DestinationRack": "x3000", "DestinationLocation": "u22", "DestinationPort": "p38"},
    {"Source": "SubRack-002-cmc", "SourceRack": "x3000", "SourceLocation": "u21",
     "DestinationRack": "x3001", "DestinationLocation": "u21", "DestinationPort": "p22"},
    {"Source": "UAN", "SourceRack": "x3000", "SourceLocation": "u26",
     "DestinationRack": "x3000", "DestinationLocation": "u22", "DestinationPort": "p37"},
    {"Source": "Ln01", "SourceRack": "x3000", "SourceLocation": "u27",
     "DestinationRack": "x3000", "DestinationLocation": "u22", "DestinationPort": "p38"},
    {"Source": "Gn01", "SourceRack": "x3000", "SourceLocation": "u28",
     "DestinationRack": "x3000", "DestinationLocation": "u22", "DestinationPort": "p38"},
    {"Source": "vn01", "SourceRack": "x3000", "SourceLocation": "u29",
     "DestinationRack": "x3000", "DestinationLocation": "u22", "DestinationPort": "p38"},
    {"Source": "Lnet01", "SourceRack": "x3000", "SourceLocation": "u30",
     "DestinationRack": "x3000", "DestinationLocation": "u22", "DestinationPort": "p38"},
    {"Source": "Lnet02", "SourceRack": "x3000", "SourceLocation": "u31",
     "DestinationRack": "x3000", "DestinationLocation": "u22", "DestinationPort": "p38"},
    {"Source": "uan02", "SourceRack": "x3000", "SourceLocation": "u32",
     "DestinationRack": "x3000", "DestinationLocation": "u22", "DestinationPort": "p38"},
    {"Source": "sw-hsn001", "SourceRack": "x3000", "SourceLocation": "u22",
     "DestinationRack": "x3000", "DestinationLocation": "u22", "DestinationPort": "p47"},
    {"Source": "Columbia", "SourceRack": "x3000", "SourceLocation": "u24",
     "DestinationRack": "x3000", "DestinationLocation": "u22", "DestinationPort": "p48"},
    {"Source": "x3000p0", "SourceRack": "x3000", "SourceLocation": " ",
     "DestinationRack": "x3000", "DestinationLocation": "u38", "DestinationPort": "j41"},
    {"Source": "x3000door-Motiv", "SourceRack": "x3000", "SourceLocation": " ",
     "DestinationRack": "x3000", "DestinationLocation": "u36", "DestinationPort": "j27"},
    {"Source": "CAN", "SourceRack": "cfcan", "SourceLocation": " ",
     "DestinationRack": "x3000", "DestinationLocation": "u38", "DestinationPort": "j49"},
    {"Source": "x3000p0", "SourceRack": "x3000", "SourceLocation": "p0",
     "DestinationRack": "x3000", "DestinationLocation": "u22", "DestinationPort": "j48"},
    {"Source": "x3001p1", "SourceRack": "x3001", "SourceLocation": "p0",
     "DestinationRack": "x3001", "DestinationLocation": "u42", "DestinationPort": "j48"},
    {"Source": "pdu0", "SourceRack": "x3001", "SourceLocation": "pdu0",
     "DestinationRack": "x3001", "DestinationLocation": "u42", "DestinationPort": "j27"},
    {"Source": "pdu2", "SourceRack": "x3001", "SourceLocation": "pdu0",
     "DestinationRack": "x3001", "DestinationLocation": "u42", "DestinationPort": "j27"},

    # River hardware in an EX2500 cabinet with one air cooled chassis
    {"Source": "nid000101", "SourceRack": "x5004", "SourceLocation": "u17", "SourceSubLocation": "R",
     "SourceParent": "SubRack-004-CMC",
     "DestinationRack": "x5004", "DestinationLocation": "u16", "DestinationPort": "j31"},
    {"Source": "nid000102", "SourceRack": "x5004", "SourceLocation": "u18", "SourceSubLocation": "R",
     "SourceParent": "SubRack-004-CMC",
     "DestinationRack": "x5004", "DestinationLocation": "u16", "DestinationPort": "j32"},
    {"Source": "nid000103", "SourceRack": "x5004", "SourceLocation": "u18", "SourceSubLocation": "L",
     "SourceParent": "SubRack-004-CMC",
     "DestinationRack": "x5004", "DestinationLocation": "u16", "DestinationPort": "j33"},
    {"Source": "nid000104", "SourceRack": "x5004", "SourceLocation": "u17", "SourceSubLocation": "L",
     "SourceParent": "SubRack-004-CMC",
     "DestinationRack": "x5004", "DestinationLocation": "u16", "DestinationPort": "j34"},
    {"Source": "SubRack-004-CMC", "SourceRack": "x5004", "SourceLocation": "u17",
     "DestinationRack": "x5004", "DestinationLocation": "u16", "DestinationPort": "j30"},
    {"Source": "wn50", "SourceRack": "x5004", "SourceLocation": "u19",
     "DestinationRack": "x5004", "DestinationLocation": "u16", "DestinationPort": "j35"},
    {"Source": "uan50", "SourceRack": "x5004", "SourceLocation": "u20",
     "DestinationRack": "x5004", "DestinationLocation": "u16", "DestinationPort": "j36"},
    {"Source": "lnet50", "SourceRack": "x5004", "SourceLocation": "u21",
     "DestinationRack": "x3001", "DestinationLocation": "u42", "DestinationPort": "j20"},
    {"Source": "sw-hsn50", "SourceRack": "x5004", "SourceLocation": "u1",
     "DestinationRack": "x5004", "DestinationLocation": "u16", "DestinationPort": "j37"},
    {"Source": "x5004p0", "SourceRack": "x5004", "SourceLocation": "p0",
     "DestinationRack": "x5004", "DestinationLocation": "u16", "DestinationPort": "j38"},
    {"Source": "pdu1", "SourceRack": "x5004", "SourceLocation": "p1",
     "DestinationRack": "x5004", "DestinationLocation": "u16", "DestinationPort": "j39"},
]

APPLICATION_NODE_CONFIG = {
    'prefixes': ["vn", "Lnet", "Login"],
    'prefix_hsm_subroles': {
        "vn": "Visualization",
        "Login": "UAN",
        "Lnet": "LNETRouter",
    },
    'aliases': {
        "x3000c0s26b0n0": ["uan-01"],
        "x3000c0s28b0n0": ["gateway-01"],
        "x3000c0s29b0n0": ["visualization-01"],
        "x3000c0s30b0n0": ["lnet-01"],
        "x3000c0s31b0n0": ["lnet-02"],
        "x3000c0s32b0n0": ["uan-02"],
        "x5004c4s20b0n0": ["uan-50"],
        "x5004c4s21b0n0": ["lnet-50"],
    },
}

# xname, name, ip, brand
SWITCHES = [
    ("x3000c0w22", "sw-leaf-bmc-01", "10.254.0.2", "Dell"),
    ("x3000c0w38", "sw-leaf-bmc-02", "10.254.0.3", "Dell"),
    ("x3001c0w21", "sw-leaf-bmc-03", "10.254.0.4", "Dell"),
    ("x3001c0w42", "sw-leaf-bmc-04", "10.254.0.42", "Aruba"),
    ("x5004c4w16", "sw-leaf-bmc-05", "10.254.0.43", "Aruba"),
]
SWITCH_MODEL = "S3048T-ON"

MOUNTAIN_STARTING_NID = 1000
HILL_COMPUTE_NODES = 288

CABINETS_YAML = {
    'cabinets': [
        {'type': 'river', 'total_number': 2, 'starting_id': 3000},
        {'type': 'EX2000', 'total_number': 1, 'starting_id': 5000},
        {'type': 'EX2500', 'cabinets': [
            {'id': 5001, 'chassis-count': {'liquid-cooled': 1, 'air-cooled': 0}},
            {'id': 5002, 'chassis-count': {'liquid-cooled': 2, 'air-cooled': 0}},
            {'id': 5003, 'chassis-count': {'liquid-cooled': 3, 'air-cooled': 0}},
            {'id': 5004, 'chassis-count': {'liquid-cooled': 1, 'air-cooled': 1}},
        ]},
        {'type': 'mountain', 'total_number': 1, 'starting_id': 1000},
    ],
}

SWITCH_METADATA_CSV = """Switch Xname,Type,Brand,Model
x3000c0w22,LeafBMC,Dell,S3048T-ON
x3000c0w38,LeafBMC,Dell,S3048T-ON
x3001c0w21,LeafBMC,Dell,S3048T-ON
x3001c0w42,LeafBMC,Aruba,S3048T-ON
x5004c4w16,LeafBMC,Aruba,S3048T-ON
"""


@pytest.fixture(autouse=True)
def system_defaults():
    """ Every test starts from an empty, already loaded system config """
    System.reset()
    System.config = {}
    System.loaded_config = True
    yield
    System.reset()

@pytest.fixture
def hmn_rows():
    return [HMNRow.from_dict(row) for row in HMN_CONNECTIONS]

@pytest.fixture
def app_config():
    config = ApplicationNodeConfig.from_dict(APPLICATION_NODE_CONFIG)
    config.normalize()
    config.validate()
    return config

@pytest.fixture
def switch_metadata():
    return [ManagementSwitch(xname, TYPE_LEAF_BMC, brand=brand, model=SWITCH_MODEL)
            for xname, _, _, brand in SWITCHES]

@pytest.fixture
def switch_hardware():
    result = dict()
    for xname, name, ip, brand in SWITCHES:
        switch = ManagementSwitch(xname, TYPE_LEAF_BMC, brand=brand, model=SWITCH_MODEL, name=name, ip=ip)
        result[xname] = to_hardware(switch)
    return result

@pytest.fixture
def cabinet_groups():
    groups = [CabinetGroupDetail.from_dict(group) for group in CABINETS_YAML['cabinets']]
    for group in groups:
        group.populate_ids()
    return groups

@pytest.fixture
def cabinet_model(cabinet_groups):
    return build_cabinet_model(cabinet_groups)

@pytest.fixture
def generator(cabinet_model, switch_hardware, app_config, hmn_rows):
    return StateGenerator(cabinet_model, switch_hardware, app_config, hmn_rows,
                          mountain_starting_nid=MOUNTAIN_STARTING_NID)

@pytest.fixture
def hardware(generator):
    return generator.build_hardware()

@pytest.fixture
def inputs(hmn_rows, switch_metadata, cabinet_groups):
    return GeneratorInputs(hmn_rows, switch_metadata, cabinet_groups,
                           ApplicationNodeConfig.from_dict(APPLICATION_NODE_CONFIG))

