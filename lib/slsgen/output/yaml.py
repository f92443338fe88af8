#!/usr/bin/env python3
"""YAML output"""
# vim: tabstop=4 expandtab shiftwidth=4 softtabstop=4

import logging
from yaml import dump
try:
    from yaml import CDumper as Dumper
except ImportError:
    logging.info("Unable to load CDumper")
    from yaml import Dumper

from slsgen.output import Output

class YamlOutput(Output):
    @classmethod
    def render(cls, state, section='state', networks=None, xname_filter=None):
        data = cls.select(state, section, networks, xname_filter)
        return dump(data, Dumper=Dumper, default_flow_style=False)
