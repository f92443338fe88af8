#!/usr/bin/env python3
"""Network layout, allocation and finalization tests"""
# vim: tabstop=4 expandtab shiftwidth=4 softtabstop=4

import ipaddress

import pytest

from slsgen import network as networks
from slsgen.network import NetworkConfig, Network, Subnet, build_networks, finalize_networks
from slsgen.cabinet import CabinetGroupDetail, build_cabinet_model
from slsgen.errors import UnknownSetting, VlanConflict, AllocationError, SubnetNotFound
from slsgen.errors import ConfigurationError, InvalidApplicationNodeConfig

NCN_COUNT = 5

@pytest.fixture
def built(cabinet_groups, switch_metadata):
    return build_networks(NetworkConfig(), cabinet_groups, switch_metadata, ncn_count=NCN_COUNT)

@pytest.fixture
def final(built, hardware):
    return finalize_networks(built, hardware, NetworkConfig())

def reservation(net, subnet_name, name):
    return net.lookup_subnet(subnet_name).lookup_reservation(name)

def test_config_defaults():
    config = NetworkConfig()
    assert config.get('nmn-cidr') == "10.252.0.0/17"
    assert config.is_set('cmn-cidr')
    assert not config.is_set('can-cidr')
    assert config.bootstrap_vlan('NMN') == 2
    assert config.bootstrap_vlan('HMN_MTN') is None

def test_config_unknown():
    with pytest.raises(UnknownSetting):
        NetworkConfig({'nmn-cider': "10.0.0.0/8"})
    with pytest.raises(UnknownSetting):
        NetworkConfig().get('bogus')

def test_option_name():
    assert networks.option_name("HMN_MTN") == "hmn-mtn"

def test_network_names(built):
    assert sorted(built) == ["BICAN", "CAN", "CMN", "HMN", "HMNLB", "HMN_MTN", "HMN_RVR", "HSN",
                             "MTL", "NMN", "NMNLB", "NMN_MTN", "NMN_RVR"]

def test_retain_and_chn(cabinet_groups, switch_metadata):
    config = NetworkConfig({'bican-user-network-name': "CHN", 'chn-cidr': "10.104.7.0/24",
                            'chn-gateway': "10.104.7.1"})
    nets = build_networks(config, cabinet_groups, switch_metadata, ncn_count=NCN_COUNT)
    assert "CHN" in nets
    assert "CAN" not in nets
    assert nets['BICAN'].system_default_route == "CHN"
    subnet = nets['CHN'].lookup_subnet("bootstrap_dhcp")
    assert subnet.cidr == "10.104.7.0/24"
    assert str(subnet.gateway) == "10.104.7.1"
    assert str(subnet.lookup_reservation("kubeapi-vip").ip) == "10.104.7.2"

def test_vlans(built):
    vlans = dict([(name, net.vlan_range) for name, net in built.items()])
    assert vlans['BICAN'] == [1]
    assert vlans['CAN'] == [6]
    assert vlans['CMN'] == [7]
    assert vlans['HMN'] == [4]
    assert vlans['NMN'] == [2]
    assert vlans['MTL'] == [0]
    assert vlans['HSN'] == [613, 868]
    assert vlans['NMN_RVR'] == [1770, 1773]
    assert vlans['NMN_MTN'] == [2000, 2003]

def test_vlan_conflict(cabinet_groups, switch_metadata):
    with pytest.raises(VlanConflict):
        build_networks(NetworkConfig({'nmn-bootstrap-vlan': 4}), cabinet_groups, switch_metadata)

def test_nmn(built):
    nmn = built['NMN']
    hardware = nmn.lookup_subnet("network_hardware")
    assert hardware.base == ipaddress.ip_address("10.252.0.0")
    assert hardware.full_name == "NMN Management Network Infrastructure"

    bootstrap = nmn.lookup_subnet("bootstrap_dhcp")
    assert bootstrap.network == ipaddress.ip_network("10.252.1.0/24")
    assert bootstrap.cidr == "10.252.1.0/17"
    assert str(bootstrap.gateway) == "10.252.0.1"
    assert str(bootstrap.lookup_reservation("kubeapi-vip").ip) == "10.252.1.2"
    assert str(bootstrap.lookup_reservation("rgw-vip").ip) == "10.252.1.3"

    uai = nmn.lookup_subnet("uai_macvlan")
    assert uai.cidr == "10.252.2.0/23"
    assert uai.vlan_id == 2
    names = [r.name for r in uai.reservations]
    assert names == ["pbs_comm_service", "pbs_service", "slurmctld_service", "slurmdbd_service", "uai_nmn_blackhole"]
    assert str(uai.reservations[0].ip) == "10.252.2.2"
    assert str(uai.reservations[-1].ip) == "10.252.2.6"
    assert uai.reservations[0].aliases == ["pbs-comm-service", "pbs-comm-service-nmn"]

def test_hmn_switch_reservations(built):
    hardware = built['HMN'].lookup_subnet("network_hardware")
    names = [(r.name, str(r.ip), r.comment) for r in hardware.reservations]
    assert names[0] == ("sw-leaf-bmc-001", "10.254.0.2", "x3000c0w22")
    assert names[-1] == ("sw-leaf-bmc-005", "10.254.0.6", "x5004c4w16")
    assert built['HMN'].lookup_subnet("bootstrap_dhcp").lookup_reservation("rgw-vip") is None

def test_river_cabinets(built):
    nmn_rvr = built['NMN_RVR']
    x3000 = nmn_rvr.lookup_subnet("cabinet_3000")
    assert x3000.cidr == "10.106.0.0/22"
    assert x3000.vlan_id == 1770
    x3001 = nmn_rvr.lookup_subnet("cabinet_3001")
    assert x3001.cidr == "10.106.4.0/22"
    assert x3001.vlan_id == 1771
    assert nmn_rvr.lookup_subnet("cabinet_5004").vlan_id == 1773
    with pytest.raises(SubnetNotFound):
        nmn_rvr.lookup_subnet("cabinet_5001")

def test_mountain_cabinets(built):
    nmn_mtn = built['NMN_MTN']
    assert nmn_mtn.lookup_subnet("cabinet_1000").vlan_id == 2000
    assert nmn_mtn.lookup_subnet("cabinet_5000").vlan_id == 2000
    assert [nmn_mtn.lookup_subnet("cabinet_%d" % cab).vlan_id for cab in range(5001, 5005)] == [2000, 2001, 2002, 2003]
    with pytest.raises(SubnetNotFound):
        nmn_mtn.lookup_subnet("cabinet_3000")

def test_explicit_cabinet_subnet(switch_metadata):
    group = CabinetGroupDetail.from_dict({'type': 'river', 'cabinets': [
        {'id': 3000, 'nmn-subnet': "10.106.8.0/22", 'nmn-vlan': 1800}]})
    nets = build_networks(NetworkConfig(), [group], switch_metadata)
    subnet = nets['NMN_RVR'].lookup_subnet("cabinet_3000")
    assert subnet.cidr == "10.106.8.0/22"
    assert subnet.vlan_id == 1800
    assert nets['NMN_RVR'].vlan_range == [1800, 1800]
    assert "NMN_MTN" not in nets

def test_cmn(built):
    cmn = built['CMN']
    assert cmn.lookup_subnet("network_hardware").network == ipaddress.ip_network("10.103.6.0/29")
    bootstrap = cmn.lookup_subnet("bootstrap_dhcp")
    assert bootstrap.network == ipaddress.ip_network("10.103.6.128/25")
    assert bootstrap.cidr == "10.103.6.128/24"
    assert str(bootstrap.gateway) == "10.103.6.1"
    assert str(bootstrap.lookup_reservation("kubeapi-vip").ip) == "10.103.6.130"
    assert cmn.peer_asn == 65533
    assert cmn.my_asn == 65532

def test_management_net_ips(cabinet_groups, switch_metadata):
    nets = build_networks(NetworkConfig({'management-net-ips': 20}), cabinet_groups, switch_metadata)
    assert nets['CMN'].lookup_subnet("network_hardware").network == ipaddress.ip_network("10.103.6.0/27")

def test_cmn_pools(cabinet_groups, switch_metadata):
    config = NetworkConfig({'cmn-static-pool': "10.103.6.112/28", 'cmn-dynamic-pool': "10.103.6.64/27",
                            'cmn-external-dns': "10.103.6.113"})
    nets = build_networks(config, cabinet_groups, switch_metadata, ncn_count=NCN_COUNT)
    static = nets['CMN'].lookup_subnet("cmn_metallb_static_pool")
    assert static.metallb_pool_name == "customer-management-static"
    assert str(static.lookup_reservation("external-dns").ip) == "10.103.6.113"
    dynamic = nets['CMN'].lookup_subnet("cmn_metallb_address_pool")
    assert dynamic.cidr == "10.103.6.64/27"
    assert dynamic.vlan_id == 7

def test_mtl(built):
    mtl = built['MTL']
    assert mtl.lookup_subnet("network_hardware").network == ipaddress.ip_network("10.1.0.0/24")
    bootstrap = mtl.lookup_subnet("bootstrap_dhcp")
    assert bootstrap.network == ipaddress.ip_network("10.1.1.0/24")
    assert bootstrap.cidr == "10.1.1.0/16"
    assert str(bootstrap.gateway) == "10.1.0.1"
    assert bootstrap.vlan_id == 0
    assert bootstrap.lookup_reservation("kubeapi-vip") is None

def test_can_without_cidr(built):
    assert built['CAN'].subnets == []
    assert not built['CAN'].has_subnet("bootstrap_dhcp")

def test_bican_and_hsn(built):
    assert built['BICAN'].to_sls()['ExtraProperties']['SystemDefaultRoute'] == "CAN"
    hsn = built['HSN'].lookup_subnet("hsn_base_subnet")
    assert hsn.cidr == "10.253.0.0/16"
    assert hsn.vlan_id == 613

def test_load_balancers(built):
    istio = reservation(built['NMNLB'], "nmn_metallb_address_pool", "istio-ingressgateway")
    assert str(istio.ip) == "10.92.100.71"
    assert "api-gw-service" in istio.aliases
    assert str(reservation(built['NMNLB'], "nmn_metallb_address_pool", "istio-ingressgateway-local").ip) == "10.92.100.81"

    hmnlb = built['HMNLB'].lookup_subnet("hmn_metallb_address_pool")
    assert hmnlb.lookup_reservation("istio-ingressgateway-local") is None
    istio = hmnlb.lookup_reservation("istio-ingressgateway")
    assert str(istio.ip) == "10.94.100.71"
    assert istio.aliases == []
    assert hmnlb.vlan_id == 4

def test_finalize(final):
    nmn = final['NMN'].lookup_subnet("bootstrap_dhcp")
    assert str(nmn.dhcp_start) == "10.252.1.10"
    assert str(nmn.dhcp_end) == "10.252.1.210"

    uai = final['NMN'].lookup_subnet("uai_macvlan")
    assert str(uai.reservation_start) == "10.252.2.10"
    assert str(uai.reservation_end) == "10.252.3.254"
    assert uai.dhcp_start is None

    cmn = final['CMN'].lookup_subnet("bootstrap_dhcp")
    assert str(cmn.dhcp_start) == "10.103.6.138"
    assert str(cmn.dhcp_end) == "10.103.6.254"

    mtl = final['MTL'].lookup_subnet("bootstrap_dhcp")
    assert str(mtl.dhcp_start) == "10.1.1.10"
    assert str(mtl.dhcp_end) == "10.1.1.210"

def test_finalize_no_supernet(cabinet_groups, switch_metadata, hardware):
    config = NetworkConfig({'supernet': False})
    nets = finalize_networks(build_networks(config, cabinet_groups, switch_metadata, ncn_count=NCN_COUNT),
                             hardware, config)
    nmn = nets['NMN'].lookup_subnet("bootstrap_dhcp")
    assert str(nmn.dhcp_start) == "10.252.1.10"
    assert str(nmn.dhcp_end) == "10.252.127.254"

def test_can_uans(cabinet_groups, switch_metadata, hardware):
    config = NetworkConfig({'can-cidr': "10.102.11.0/24", 'can-gateway': "10.102.11.1"})
    nets = build_networks(config, cabinet_groups, switch_metadata, ncn_count=NCN_COUNT)
    bootstrap = nets['CAN'].lookup_subnet("bootstrap_dhcp")
    assert [r.name for r in bootstrap.reservations] == ["can-switch-1", "can-switch-2", "kubeapi-vip"]
    with pytest.raises(InvalidApplicationNodeConfig):
        finalize_networks(nets, hardware, config)

def test_can_requires_gateway(cabinet_groups, switch_metadata):
    with pytest.raises(ConfigurationError):
        build_networks(NetworkConfig({'can-cidr': "10.102.11.0/24"}), cabinet_groups, switch_metadata)

def test_cabinet_networks(built, cabinet_groups):
    model = build_cabinet_model(cabinet_groups, built)
    x3000 = model.get("x3000").networks
    assert x3000['cn']['NMN'] == {'CIDR': "10.106.0.0/22", 'Gateway': "10.106.0.1", 'VLan': 1770}
    assert x3000['ncn'] == x3000['cn']
    x1000 = model.get("x1000").networks
    assert x1000['cn']['NMN']['VLan'] == 2000
    assert 'ncn' not in x1000

def test_subnet_reservations():
    subnet = Subnet("network_hardware", ipaddress.ip_network("10.0.0.0/29"))
    assert str(subnet.gateway) == "10.0.0.1"
    for index in range(6):
        subnet.add_reservation("host%d" % index)
    assert str(subnet.reservations[0].ip) == "10.0.0.2"
    with pytest.raises(AllocationError):
        subnet.add_reservation("one-too-many")

def test_reservation_with_ip():
    subnet = Subnet("static", ipaddress.ip_network("10.0.0.0/28"))
    subnet.add_reservation_with_ip("dns", "10.0.0.5", "lookups")
    with pytest.raises(AllocationError):
        subnet.add_reservation_with_ip("dns2", "10.0.1.5")
    with pytest.raises(AllocationError):
        subnet.add_reservation_with_ip("dns3", "")

def test_reservation_ip6():
    subnet = Subnet("bootstrap_dhcp", ipaddress.ip_network("10.0.0.0/24"))
    subnet.set_cidr6("fd00:0:0:1::/64")
    first = subnet.add_reservation("a")
    second = subnet.add_reservation("b")
    assert str(first.ip6) == "fd00:0:0:1::2"
    assert str(second.ip6) == "fd00:0:0:1::3"
    assert subnet.to_sls()['Gateway6'] == "fd00:0:0:1::1"

def test_add_biggest_subnet():
    net = Network("TEST", "Test", "10.0.0.0/24", [10])
    net.add_subnet(25, "a", 10)
    net.add_subnet(26, "b", 10)
    biggest = net.add_biggest_subnet(24, "c", 10)
    assert biggest.cidr == "10.0.0.192/26"
    with pytest.raises(AllocationError):
        net.add_biggest_subnet(24, "d", 10)

def test_lookup_duplicates():
    net = Network("TEST", "Test", "10.0.0.0/24", [10])
    net.add_subnet(26, "a", 10)
    net.add_subnet(26, "a", 10)
    with pytest.raises(AllocationError):
        net.lookup_subnet("a")

def test_to_sls(final):
    sls = final['NMN'].to_sls()
    assert sls['Name'] == "NMN"
    assert sls['IPRanges'] == ["10.252.0.0/17"]
    assert sls['Type'] == "ethernet"
    extra = sls['ExtraProperties']
    assert extra['MTU'] == 9000
    assert extra['VlanRange'] == [2]
    bootstrap = [subnet for subnet in extra['Subnets'] if subnet['Name'] == "bootstrap_dhcp"][0]
    assert bootstrap['CIDR'] == "10.252.1.0/17"
    assert bootstrap['DHCPStart'] == "10.252.1.10"
    assert bootstrap['IPReservations'][0] == {'Name': "kubeapi-vip", 'IPAddress': "10.252.1.2",
                                              'Comment': "k8s-virtual-ip"}

    cmn = final['CMN'].to_sls()['ExtraProperties']
    assert cmn['PeerASN'] == 65533
    assert cmn['MyASN'] == 65532
