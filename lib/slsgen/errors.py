#!/usr/bin/env python3
"""Exceptions raised while building SLS state"""
# vim: tabstop=4 expandtab shiftwidth=4 softtabstop=4

class SLSGenError(Exception):
    """Base class for every generation failure

    context carries the offending xname, row or setting so the caller can
    report it without the core having to log anything.
    """
    def __init__(self, message, context=None):
        Exception.__init__(self, message)
        self.context = context

# Configuration errors
class ConfigurationError(SLSGenError):
    pass

class UnknownCabinetKind(ConfigurationError):
    pass

class InvalidOverride(ConfigurationError):
    pass

class MissingChassisCount(ConfigurationError):
    pass

class InvalidChassisCount(ConfigurationError):
    pass

class NotAirCooledCapable(ConfigurationError):
    pass

class NoAirCooledChassis(ConfigurationError):
    pass

class UnknownCabinet(ConfigurationError):
    pass

class UnknownSetting(ConfigurationError):
    pass

# Cabling row errors
class RowParseError(SLSGenError):
    pass

class MalformedRowField(RowParseError):
    pass

class MalformedSourceRack(MalformedRowField):
    pass

# Identifier errors
class IdentifierError(SLSGenError):
    pass

class InvalidXname(IdentifierError):
    pass

class UnknownSwitchType(IdentifierError):
    pass

class MissingSwitch(IdentifierError):
    pass

class InvalidSwitch(IdentifierError):
    pass

# Consistency errors
class ConsistencyError(SLSGenError):
    pass

class DuplicateKey(ConsistencyError):
    pass

class DuplicateAlias(ConsistencyError):
    pass

class InvalidApplicationNodeConfig(ConsistencyError):
    pass

# Address allocation errors
class AllocationError(SLSGenError):
    pass

class SubnetNotFound(AllocationError):
    pass

class VlanConflict(AllocationError):
    pass

# Input file errors
class DatasourceError(SLSGenError):
    pass
