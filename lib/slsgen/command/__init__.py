#!/usr/bin/env python3
"""Commands"""
# vim: tabstop=4 expandtab shiftwidth=4 softtabstop=4

import sys
import logging
import os

import slsgen

class Command(object):
    @classmethod
    def get_parser(cls):
        raise NotImplementedError

    @classmethod
    def cli(cls, argv=None):
        raise NotImplementedError

def run_command_cli():
    command = os.path.basename(sys.argv[0])
    if command.startswith('slsgen-'):
        command = command[7:]
    elif command == 'slsgen':
        sys.argv.pop(0)
        try:
            command = sys.argv[0]
        except IndexError:
            logging.error("No command specified")
            return 1
    try:
        cmdclass = slsgen.get_component('command', command)
    except ImportError as e:
        logging.error("Unknown command %s: %s", command, e)
        return 1
    return cmdclass.cli()
