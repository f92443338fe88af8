#!/usr/bin/env python3
"""hosts file output of every network reservation"""
# vim: tabstop=4 expandtab shiftwidth=4 softtabstop=4

import logging
from jinja2 import Environment

from slsgen.system import System
from slsgen.output import Output

DEFAULT_TEMPLATE = "{{ ip }}\t{{ name }}{% for alias in aliases %} {{ alias }}{% endfor %}"

class HostsOutput(Output):
    environment = None

    @classmethod
    def template(cls):
        if cls.environment is None:
            cls.environment = Environment()
        source = System.setting('hosts_template', DEFAULT_TEMPLATE)
        return cls.environment.from_string(source)

    @classmethod
    def entries(cls, state, networks=None):
        """ One dict per reservation, networks and subnets in order """
        for netname in sorted(state.networks):
            if networks and netname not in networks:
                continue
            net = state.networks[netname]
            for subnet, reservation in net.reservations():
                yield {
                    'network': netname,
                    'subnet': subnet.name,
                    'ip': str(reservation.ip),
                    'name': reservation.name,
                    'aliases': [alias for alias in reservation.aliases if alias != reservation.name],
                    'comment': reservation.comment,
                }

    @classmethod
    def render(cls, state, section='state', networks=None, xname_filter=None):
        template = cls.template()
        lines = [template.render(**entry) for entry in cls.entries(state, networks)]
        logging.debug("Rendered %d host entries", len(lines))
        return "\n".join(lines)
