#!/usr/bin/env python3
"""JSON output"""
# vim: tabstop=4 expandtab shiftwidth=4 softtabstop=4

import json

from slsgen.output import Output

class JsonOutput(Output):
    indent = 2

    @classmethod
    def render(cls, state, section='state', networks=None, xname_filter=None):
        data = cls.select(state, section, networks, xname_filter)
        return json.dumps(data, indent=cls.indent, sort_keys=True)
