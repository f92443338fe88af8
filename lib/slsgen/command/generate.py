#!/usr/bin/env python3
"""Generate SLS input state from seed files"""
# vim: tabstop=4 expandtab shiftwidth=4 softtabstop=4

import sys
import logging
import argparse

from ClusterShell.NodeSet import NodeSet, NodeSetException
import slsgen
from slsgen import xname as xnames
from slsgen.system import System
from slsgen.command import Command
from slsgen.generator import generate_state
from slsgen.errors import SLSGenError

def cabinet_filter(cabinets):
    """ Matches xnames inside one of the cabinets of a NodeSet """
    def match(xname):
        cab = xnames.cabinet_of(xname)
        return cab is not None and cab in cabinets
    return match

class GenerateCommand(Command):
    @classmethod
    def get_parser(cls):
        parser = argparse.ArgumentParser(description="Generate SLS input state from seed files")
        parser.add_argument('-c', '--config', default=None, type=str, dest='config', help='System config file (default: $SLSGEN_CONF/system.yaml)')
        parser.add_argument('-s', '--seed-dir', default='.', type=str, dest='seed_dir', help='Directory holding the seed files')
        parser.add_argument('-o', '--output', default=None, type=str, dest='output', help='Write to this file instead of stdout')
        parser.add_argument('--format', default=None, type=str, choices=['json', 'yaml', 'hosts'], dest='format', help='Output format (default: json)')
        subparsers = parser.add_subparsers(help='sub-command help', dest='action')
        subparsers.required = True
        subparsers.add_parser('state', help='Hardware and networks')
        parser_hardware = subparsers.add_parser('hardware', help='Hardware only')
        parser_hardware.add_argument('--cabinets', default=None, type=str, dest='cabinets', help='Cabinets to include, e.g. x[3000-3001] (default: show all)')
        parser_networks = subparsers.add_parser('networks', help='Networks only')
        parser_networks.add_argument('--network', '-n', default=[], type=str, action='append', dest='networks', help='Networks to include (default: show all)')
        parser_hosts = subparsers.add_parser('hosts', help='hosts file of every reservation')
        parser_hosts.add_argument('--network', '-n', default=[], type=str, action='append', dest='networks', help='Networks to include (default: show all)')
        parser.add_argument('-v', '--verbose', action='count', default=0)
        return parser

    @classmethod
    def cli(cls, argv=None):
        parser = cls.get_parser()
        args = parser.parse_args(argv)

        slsgen.setup_logging(args.verbose)

        cmdmap = { 'state':    cls.state,
                   'hardware': cls.hardware,
                   'networks': cls.networks,
                   'hosts':    cls.hosts,
                 }

        if args.action not in cmdmap:
            logging.error("Action %s not yet implemented", args.action)
            return 1
        try:
            System.load_config(args.config)
            state = cls.generate(args)
            text = cmdmap[args.action](state, args)
        except (SLSGenError, NodeSetException, ImportError) as e:
            logging.error("%s", e)
            return 1
        cls.write(text, args)
        return 0

    @classmethod
    def generate(cls, args):
        datasource = slsgen.get_component('datasource')
        inputs = datasource.load(args.seed_dir)
        return generate_state(inputs, System.config)

    @classmethod
    def _output(cls, args, provider=None):
        if provider is None:
            provider = args.format
        return slsgen.get_component('output', provider)

    @classmethod
    def state(cls, state, args):
        return cls._output(args).render(state, 'state')

    @classmethod
    def hardware(cls, state, args):
        xname_filter = None
        if args.cabinets:
            xname_filter = cabinet_filter(NodeSet(args.cabinets))
        return cls._output(args).render(state, 'hardware', xname_filter=xname_filter)

    @classmethod
    def networks(cls, state, args):
        return cls._output(args).render(state, 'networks', networks=args.networks)

    @classmethod
    def hosts(cls, state, args):
        return cls._output(args, 'hosts').render(state, 'hosts', networks=args.networks)

    @classmethod
    def write(cls, text, args):
        if args.output is None:
            print(text)
            return
        logging.info("Writing '%s'", args.output)
        with open(args.output, 'w') as outfd:
            outfd.write(text)
            outfd.write("\n")

if __name__ == '__main__':
    sys.exit(GenerateCommand.cli())
