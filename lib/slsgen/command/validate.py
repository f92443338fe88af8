#!/usr/bin/env python3
"""Validate seed files without generating anything"""
# vim: tabstop=4 expandtab shiftwidth=4 softtabstop=4

import sys
import logging
import argparse

import slsgen
from slsgen.system import System
from slsgen.command import Command
from slsgen.cabinet import build_cabinet_model, CLASSES
from slsgen.network import NetworkConfig
from slsgen.errors import SLSGenError

class ValidateCommand(Command):
    @classmethod
    def get_parser(cls):
        parser = argparse.ArgumentParser(description="Validate seed files")
        parser.add_argument('-c', '--config', default=None, type=str, dest='config', help='System config file (default: $SLSGEN_CONF/system.yaml)')
        parser.add_argument('-s', '--seed-dir', default='.', type=str, dest='seed_dir', help='Directory holding the seed files')
        parser.add_argument('-v', '--verbose', action='count', default=0)
        return parser

    @classmethod
    def cli(cls, argv=None):
        parser = cls.get_parser()
        args = parser.parse_args(argv)

        slsgen.setup_logging(args.verbose)
        try:
            System.load_config(args.config)
            NetworkConfig(System.setting('networks'))
            datasource = slsgen.get_component('datasource')
            inputs = datasource.load(args.seed_dir)
            inputs.validate()
            model = build_cabinet_model(inputs.cabinet_groups)
        except (SLSGenError, ImportError) as e:
            logging.error("%s", e)
            return 1

        counts = ", ".join(["%d %s" % (len(model.by_class(cabinet_class)), cabinet_class) for cabinet_class in CLASSES])
        print("%d cabling rows, %d switches, cabinets: %s" % (len(inputs.rows), len(inputs.switch_metadata), counts))
        return 0

if __name__ == '__main__':
    sys.exit(ValidateCommand.cli())
