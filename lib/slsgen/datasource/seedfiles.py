#!/usr/bin/env python3
"""Seed file data source"""
# vim: tabstop=4 expandtab shiftwidth=4 softtabstop=4

import os
import csv
import json
import logging
import yaml
try:
    from yaml import CLoader as Loader
except ImportError:
    logging.info("Unable to load CLoader")
    from yaml import Loader

from slsgen.system import System
from slsgen.datasource import Datasource
from slsgen.rows import HMNRow
from slsgen.switches import ManagementSwitch
from slsgen.appnode import ApplicationNodeConfig
from slsgen.cabinet import CabinetGroupDetail, default_groups
from slsgen.generator import GeneratorInputs
from slsgen.errors import DatasourceError

class SeedfilesDatasource(Datasource):
    hmn_connections = "hmn_connections.json"
    switch_metadata = "switch_metadata.csv"
    cabinets = "cabinets.yaml"
    application_node_config = "application_node_config.yaml"

    @classmethod
    def _path(cls, seed_dir, filename):
        return os.path.join(seed_dir, filename)

    @classmethod
    def _load_yaml(cls, filename):
        logging.info("Loading seed file '%s'", filename)
        try:
            with open(filename) as yamlfd:
                return yaml.load(yamlfd, Loader=Loader) or {}
        except (IOError, OSError) as e:
            raise DatasourceError("unable to read %s: %s" % (filename, e), context=filename)
        except yaml.YAMLError as e:
            raise DatasourceError("unable to parse %s: %s" % (filename, e), context=filename)

    @classmethod
    def read_rows(cls, filename):
        logging.info("Loading seed file '%s'", filename)
        try:
            with open(filename) as jsonfd:
                data = json.load(jsonfd)
        except (IOError, OSError) as e:
            raise DatasourceError("unable to read %s: %s" % (filename, e), context=filename)
        except ValueError as e:
            raise DatasourceError("unable to parse %s: %s" % (filename, e), context=filename)
        if not isinstance(data, list):
            raise DatasourceError("%s must hold a list of connections" % filename, context=filename)
        return [HMNRow.from_dict(entry) for entry in data]

    @classmethod
    def read_switch_metadata(cls, filename):
        logging.info("Loading seed file '%s'", filename)
        try:
            with open(filename, newline='') as csvfile:
                reader = csv.DictReader(csvfile, delimiter=',')
                switches = []
                for row in reader:
                    row = dict([(key.strip(), value) for key, value in row.items() if key is not None])
                    switches.append(ManagementSwitch.from_dict(row))
        except (IOError, OSError) as e:
            raise DatasourceError("unable to read %s: %s" % (filename, e), context=filename)
        except csv.Error as e:
            raise DatasourceError("unable to parse %s: %s" % (filename, e), context=filename)
        return switches

    @classmethod
    def read_cabinets(cls, filename):
        if not os.path.exists(filename):
            logging.info("No cabinets file at '%s', using cabinet counts from the system config", filename)
            return default_groups(System.setting('cabinets', {}))
        data = cls._load_yaml(filename)
        return [CabinetGroupDetail.from_dict(group) for group in data.get('cabinets') or []]

    @classmethod
    def read_application_node_config(cls, filename):
        if not os.path.exists(filename):
            logging.info("No application node config at '%s', using default prefixes", filename)
            return ApplicationNodeConfig()
        return ApplicationNodeConfig.from_dict(cls._load_yaml(filename))

    @classmethod
    def load(cls, location):
        if not os.path.isdir(location):
            raise DatasourceError("seed directory %s does not exist" % location, context=location)
        return GeneratorInputs(
            cls.read_rows(cls._path(location, cls.hmn_connections)),
            cls.read_switch_metadata(cls._path(location, cls.switch_metadata)),
            cls.read_cabinets(cls._path(location, cls.cabinets)),
            cls.read_application_node_config(cls._path(location, cls.application_node_config)))
