#!/usr/bin/env python3
"""Generic output functions"""
# vim: tabstop=4 expandtab shiftwidth=4 softtabstop=4

SECTIONS = ['state', 'hardware', 'networks']

class Output(object):
    @classmethod
    def render(cls, state, section='state', networks=None, xname_filter=None):
        """ Returns the text form of an SLSState """
        raise NotImplementedError

    @classmethod
    def select(cls, state, section='state', networks=None, xname_filter=None):
        """ The part of the state to print as plain dicts """
        if section == 'hardware':
            return state.hardware_dict(xname_filter)
        if section == 'networks':
            return state.networks_dict(networks)
        return {
            'Hardware': state.hardware_dict(xname_filter),
            'Networks': state.networks_dict(networks),
        }

DEFAULT_PROVIDER='json'
