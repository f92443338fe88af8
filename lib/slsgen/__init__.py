#!/usr/bin/env python3
"""SLS state generation for HPC clusters"""
# vim: tabstop=4 expandtab shiftwidth=4 softtabstop=4

import os
import logging
import sys

logging.basicConfig(format="%(levelname)s: %(message)s")

from slsgen.system import System


def setup_logging(level=0):
    levels = [logging.WARNING, logging.INFO, logging.DEBUG]
    level = levels[min(len(levels)-1,level)]
    logging.getLogger().setLevel(level)

def get_component(category, provider=None, providerclass=None):
    packagefile = "slsgen." + category
    if packagefile not in list(sys.modules):
        logging.debug("Loading package %s", packagefile)
        __import__(packagefile)

    if provider is None:
        provider = System.setting(category)
        if provider is None:
            provider = getattr(sys.modules[packagefile], 'DEFAULT_PROVIDER')
    provider = provider.lower()

    modname = "slsgen.%s.%s" % (category, provider)

    # Check if the module needs to be loaded, load it if required
    if modname not in list(sys.modules):
        logging.debug("Loading module %s", modname)
        try:
            __import__(modname)
        except ImportError as e:
            raise ImportError("Could not load %s provider %s (%s)" % (category, provider, e))

    # Get the class pointer
    if providerclass == None:
        providerclass = provider.capitalize() + category.capitalize()
    try:
        return getattr(sys.modules[modname], providerclass)
    except AttributeError as e:
        raise ImportError("Could not find class %s (%s)" % (providerclass, e))

# Lightweight attempt to standardize a location for config files
try:
    conf_path = os.environ['SLSGEN_CONF']
except KeyError:
    conf_path = '/etc/slsgen'
