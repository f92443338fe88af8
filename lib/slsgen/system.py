#!/usr/bin/env python3
"""slsgen class to manage system settings"""
# vim: tabstop=4 expandtab shiftwidth=4 softtabstop=4

import os
import logging
from yaml import load
try:
    from yaml import CLoader as Loader
except ImportError:
    logging.info("Unable to load CLoader")
    from yaml import Loader

import slsgen

class System(object):
    loaded_config = False

    # Dict to hold all System data
    config = dict()

    @classmethod
    def load_config(cls, filename=None):
        """ Reads and processes the system.yaml file

        A missing default file is not an error, every setting has a default.
        An explicitly named file must exist.
        """
        if cls.loaded_config:
            return

        if filename is None:
            filename = "%s/system.yaml" % slsgen.conf_path
            if not os.path.exists(filename):
                logging.info("No system file at '%s', using defaults", filename)
                cls.config = {}
                cls.loaded_config = True
                return

        # Read the yaml file
        logging.info("Loading system file '%s'", filename)
        with open(filename) as systemfd:
            systemdata = load(systemfd, Loader=Loader) or {}

        cls.config = systemdata
        cls.loaded_config = True

    @classmethod
    def reset(cls):
        cls.config = dict()
        cls.loaded_config = False

    @classmethod
    def setting(cls, key, default=None):
        if not cls.loaded_config:
            cls.load_config()
        try:
            return cls.config[key]
        except KeyError:
            return default
