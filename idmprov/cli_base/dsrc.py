# --- BEGIN COPYRIGHT BLOCK ---
# Copyright (C) 2017 Red Hat, Inc.
# All rights reserved.
#
# License: GPL (version 3 or any later version).
# See LICENSE for details.
# --- END COPYRIGHT BLOCK ---

import configparser
import os

from idmprov._constants import DSRC_CONTAINER
from idmprov.exceptions import InvalidArgumentError

DEFAULT_SECTION = 'idmprov'

# rc option -> config attribute. The password is never read from an rc file.
DSRC_OPTIONS = {
    'uri': 'uri',
    'basedn': 'basedn',
    'binddn': 'binddn',
    'uid_min': 'uid_min',
    'gid_min': 'gid_min',
    'login_shell': 'login_shell',
    'home_base': 'home_base',
    'mail_domain': 'mail_domain',
    'password_scheme': 'password_scheme',
    'timeout': 'timeout',
    'lock_file': 'lock_file',
}


def _read_dsrc(path, log):
    path = os.path.expanduser(path)
    log.debug("dsrc path: %s" % path)
    log.debug("dsrc container path: %s" % DSRC_CONTAINER)
    config = configparser.ConfigParser()
    # First read our container config if it exists
    # Then overlap the user config.
    try:
        config.read([DSRC_CONTAINER, path])
    except configparser.Error as e:
        raise InvalidArgumentError("Cannot parse %s: %s" % (path, e))

    log.debug("dsrc sections: %s" % config.sections())

    return config


def dsrc_to_settings(path, section, log):
    """
    Given a path to a file, return the settings of one section.

    The file should be an ini file, and section should identify a section.
    Every option is optional:

    [idmprov]
    uri = ldap://ldap.lab.local:389
    basedn = dc=lab,dc=local
    binddn = cn=admin,dc=lab,dc=local
    uid_min = 10000
    gid_min = 10000
    login_shell = /bin/bash
    home_base = /home
    mail_domain = lab.local
    password_scheme = SSHA
    timeout = 10
    lock_file = /run/idmprov.lock

    :returns: dict of config attributes, empty when the section is absent
    """
    config = _read_dsrc(path, log)
    if section is None:
        section = DEFAULT_SECTION

    if not config.has_section(section):
        log.debug("dsrc no such section: %s" % section)
        return {}

    settings = {}
    for option in config.options(section):
        if option == 'bindpw':
            log.warning("Warning: %s [%s] bindpw is ignored, use -y with a password file" % (path, section))
            continue
        if option not in DSRC_OPTIONS:
            raise InvalidArgumentError("%s [%s] unknown option %s" % (path, section, option))
        settings[DSRC_OPTIONS[option]] = config.get(section, option)

    log.debug("dsrc settings: %s" % settings)
    return settings


def dsrc_arg_concat(args, config):
    """
    Overlay the connection flags of the command line on top of a config
    that already holds the environment and rc file settings.

    :param args: The parsed arguments, with uri, basedn, binddn, lock_file
    :type args: argparse.Namespace
    :param config: The config to update
    :type config: idmprov.config.ProvisionConfig

    :returns: config
    """
    return config.overlay(
        uri=getattr(args, 'uri', None),
        basedn=getattr(args, 'basedn', None),
        binddn=getattr(args, 'binddn', None),
        lock_file=getattr(args, 'lock_file', None),
    )
