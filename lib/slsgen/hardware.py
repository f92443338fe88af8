#!/usr/bin/env python3
"""Hardware entries and their type specific extra properties"""
# vim: tabstop=4 expandtab shiftwidth=4 softtabstop=4

from slsgen import xname as xnames
from slsgen.errors import InvalidXname

def vault_path(xname):
    return "vault://hms-creds/%s" % xname


class ExtraProperties(object):
    """ Base for the closed set of extra property variants

    Each subclass lists its serialized fields in 'fields' as (attribute, JSON key)
    pairs and the HMS types it may be attached to in 'hmstypes'.  Empty values
    are left out of the serialized form.
    """
    hmstypes = ()
    fields = ()

    def __init__(self, **kwargs):
        names = [attr for attr, _ in self.fields]
        for key in kwargs:
            if key not in names:
                raise TypeError("%s has no field %s" % (self.__class__.__name__, key))
        for attr in names:
            setattr(self, attr, kwargs.get(attr))

    def to_dict(self):
        result = dict()
        for attr, key in self.fields:
            value = getattr(self, attr)
            if value is None or value == "" or value == [] or value == {} or value == 0:
                continue
            result[key] = value
        return result

    def __eq__(self, other):
        return type(self) == type(other) and self.to_dict() == other.to_dict()

    def __repr__(self):
        return "%s(%s)" % (self.__class__.__name__, self.to_dict())


class CabinetProps(ExtraProperties):
    hmstypes = (xnames.CABINET,)
    fields = (('networks', 'Networks'), ('model', 'Model'))


class MgmtSwitchProps(ExtraProperties):
    hmstypes = (xnames.MGMT_SWITCH,)
    fields = (
        ('ip4addr', 'IP4addr'),
        ('ip6addr', 'IP6addr'),
        ('brand', 'Brand'),
        ('model', 'Model'),
        ('snmp_auth_password', 'SNMPAuthPassword'),
        ('snmp_auth_protocol', 'SNMPAuthProtocol'),
        ('snmp_priv_password', 'SNMPPrivPassword'),
        ('snmp_priv_protocol', 'SNMPPrivProtocol'),
        ('snmp_username', 'SNMPUsername'),
        ('aliases', 'Aliases'),
    )


class MgmtHLSwitchProps(ExtraProperties):
    hmstypes = (xnames.MGMT_HL_SWITCH,)
    fields = (
        ('ip4addr', 'IP4addr'),
        ('ip6addr', 'IP6addr'),
        ('brand', 'Brand'),
        ('model', 'Model'),
        ('aliases', 'Aliases'),
    )


class CDUMgmtSwitchProps(ExtraProperties):
    hmstypes = (xnames.CDU_MGMT_SWITCH,)
    fields = (('brand', 'Brand'), ('model', 'Model'), ('aliases', 'Aliases'))


class NodeProps(ExtraProperties):
    hmstypes = (xnames.NODE,)
    fields = (('nid', 'NID'), ('role', 'Role'), ('subrole', 'SubRole'), ('aliases', 'Aliases'))


class MgmtSwitchConnectorProps(ExtraProperties):
    hmstypes = (xnames.MGMT_SWITCH_CONNECTOR,)
    fields = (('node_nics', 'NodeNics'), ('vendor_name', 'VendorName'))


class RouterBMCProps(ExtraProperties):
    hmstypes = (xnames.ROUTER_BMC,)
    fields = (('username', 'Username'), ('password', 'Password'))


class GenericHardware(object):
    """ One SLS hardware entry

    Parent, type and type string are always derived from the xname so they
    can never disagree with it.
    """
    def __init__(self, xname, hclass, props=None):
        self.xname = xnames.normalize(xname)
        self.type_string = xnames.validate(self.xname)
        if props is not None and self.type_string not in props.hmstypes:
            raise InvalidXname("%s extra properties cannot be attached to %s %s" %
                               (props.__class__.__name__, self.type_string, self.xname), context=self.xname)
        self.parent = xnames.parent_of(self.xname)
        self.hclass = hclass
        self.props = props

    @property
    def type(self):
        return xnames.sls_type(self.type_string)

    def to_dict(self):
        result = {
            'Parent': self.parent,
            'Xname': self.xname,
            'Type': self.type,
            'Class': self.hclass,
            'TypeString': self.type_string,
        }
        if self.props is not None:
            extra = self.props.to_dict()
            if extra:
                result['ExtraProperties'] = extra
        return result

    def __repr__(self):
        return "GenericHardware(%s, %s, %s)" % (self.xname, self.type_string, self.hclass)
