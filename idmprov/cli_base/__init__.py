# --- BEGIN COPYRIGHT BLOCK ---
# Copyright (C) 2016 Red Hat, Inc.
# Copyright (C) 2019 William Brown <william@blackhats.net.au>
# All rights reserved.
#
# License: GPL (version 3 or any later version).
# See LICENSE for details.
# --- END COPYRIGHT BLOCK ---

import logging
import sys

from getpass import getpass
from idmprov import DirectoryClient
from idmprov._constants import DSRC_HOME
from idmprov.cli_base.dsrc import dsrc_to_settings, dsrc_arg_concat
from idmprov.config import ProvisionConfig
from idmprov.exceptions import Error, InvalidArgumentError


def _get_arg(args, msg=None, hidden=False, confirm=False):
    if args is not None and len(args) > 0:
        if type(args) is list:
            return args[0]
        else:
            return args
    else:
        if hidden:
            if confirm:
                x = getpass("%s : " % msg)
                y = getpass("CONFIRM - %s : " % msg)
                if x != y:
                    raise InvalidArgumentError("inputs do not match, aborting.")
                return y
            else:
                return getpass("%s : " % msg)
        else:
            return input("%s : " % msg)


def _read_pwdfile(path):
    try:
        with open(path, "r") as f:
            return f.readline().rstrip()
    except EnvironmentError as e:
        raise InvalidArgumentError("Failed to open password file: " + str(e))


def build_config(args, log, environ=None):
    """Resolve the settings of a run: environment, then the rc file section,
    then the command line.

    :param args: The parsed arguments
    :type args: argparse.Namespace
    :param log: The cli logger
    :type log: logging.Logger
    :param environ: Mapping of knobs, os.environ when None
    :type environ: dict

    :returns: ProvisionConfig
    :raises: InvalidArgumentError
    """
    config = ProvisionConfig.from_environ(environ)
    rc_path = getattr(args, 'rc', None) or DSRC_HOME
    config.overlay(**dsrc_to_settings(rc_path, getattr(args, 'section', None), log))
    dsrc_arg_concat(args, config)

    if getattr(args, 'pwdfile', None) is not None:
        config.bindpw = _read_pwdfile(args.pwdfile)
    elif getattr(args, 'bindpw', None) is not None:
        config.bindpw = args.bindpw
    elif getattr(args, 'prompt', False) is True:
        config.bindpw = getpass("Enter password for {} on {}: ".format(config.admin_dn, config.uri))

    log.debug("config: %r" % config)
    return config


def connect_instance(config, verbose=False):
    """Open a bound DirectoryClient for config.

    With an ldapi endpoint and no password the client autobinds, otherwise
    it binds as config.admin_dn.

    :returns: DirectoryClient
    :raises: ConnectionFailure, PermissionDenied, InvalidArgumentError
    """
    client = DirectoryClient(config.uri,
                             binddn=config.admin_dn,
                             bindpw=config.bindpw,
                             timeout=config.timeout,
                             verbose=verbose)
    client.open()
    return client


def disconnect_instance(inst):
    if inst is not None:
        inst.close()


class LogCapture(logging.Handler):
    """
    This useful class is for intercepting logs, and then making assertions about
    the outputs provided. Used by the cli unit tests.
    """

    def __init__(self):
        """
        Create a log instance and primes the output capture.
        """
        super(LogCapture, self).__init__()
        self.outputs = []
        self.log = logging.getLogger("LogCapture")
        self.log.addHandler(self)
        self.log.setLevel(logging.INFO)

    def emit(self, record):
        self.outputs.append(record)

    def contains(self, query):
        """
        Assert that the query string listed is in some logged Record.
        """
        result = False
        for rec in self.outputs:
            if query in rec.getMessage():
                result = True
        return result

    def print(self):
        for rec in self.outputs:
            print(rec.getMessage())

    def flush(self):
        self.outputs = []


class FakeArgs(object):
    def __init__(self):
        pass

    def __len__(self):
        return len(self.__dict__.keys())


def setup_script_logger(name, verbose=False):
    """Reset the python logging system for STDOUT, and attach a new
    console logger with cli expected formatting.

    :param name: Name of the logger
    :type name: str
    :param verbose: Enable verbose format of messages
    :type verbose: bool
    :return: logging.logger
    """
    root = logging.getLogger()
    log = logging.getLogger(name)
    log_handler = logging.StreamHandler(sys.stdout)

    if verbose:
        log.setLevel(logging.DEBUG)
        root.setLevel(logging.DEBUG)
        log_format = '%(levelname)s: %(message)s'
    else:
        log.setLevel(logging.INFO)
        root.setLevel(logging.INFO)
        log_format = '%(message)s'

    log_handler.setFormatter(logging.Formatter(log_format))
    root.addHandler(log_handler)

    return log


def format_error_to_dict(exception):
    """Make sure an error is reported as a dict, whatever raised it

    :param exception: Exception you need to print
    :type exception: Exception
    :returns: dict
    """
    if isinstance(exception, Error):
        return exception.to_dict()
    return {'type': type(exception).__name__, 'desc': str(exception)}
