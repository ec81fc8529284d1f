"""Startup failures and the process exit status each one maps to."""

from __future__ import annotations


class HesperusError(Exception):
    exit_code = 1


class ConfigError(HesperusError):
    pass


class ConfigReadError(ConfigError):
    exit_code = 2


class ConfigParseError(ConfigError):
    exit_code = 3


class RadioError(HesperusError):
    exit_code = 1
