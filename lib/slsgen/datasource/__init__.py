#!/usr/bin/env python3
"""Generic seed data source functions"""
# vim: tabstop=4 expandtab shiftwidth=4 softtabstop=4

class Datasource(object):
    @classmethod
    def load(cls, location):
        """ Returns GeneratorInputs read from location """
        raise NotImplementedError

DEFAULT_PROVIDER='seedfiles'
