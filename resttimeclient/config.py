# Copyright (C) 2024 The REST Time Client developers
#
# This file is part of the REST Time Client.
#
# It is subject to the license terms in the LICENSE file found in the top-level
# directory of this distribution.
#
# No part of the REST Time Client, including this file, may be copied,
# modified, propagated, or distributed except according to the terms contained
# in the LICENSE file.

import configparser
import os

import appdirs

from resttimeclient.errors import ClientError
from resttimeclient.remote import DEFAULT_TIMEOUT

APP_NAME = 'rest-time-client'

CONFIG_FILENAME = 'rtc.conf'

default_conf = {'client': {'public_key_file': '',
                           'timeout': str(DEFAULT_TIMEOUT),
                           'socks5_proxy': '',
                           'strict': 'no'}}

class ConfigFileError(ClientError):
    """The configuration file can't be read or has invalid values"""


def default_config_path():
    return os.path.join(appdirs.user_config_dir(APP_NAME), CONFIG_FILENAME)


class ClientConfig:
    """Settings from the configuration file

    Only the [client] section is used. Values not set in the file keep the
    defaults in default_conf; empty strings mean "not set".
    """

    def __init__(self, config_file=None):
        self.config = configparser.ConfigParser()
        self.config.read_dict(default_conf)

        try:
            if config_file is None:
                # A missing default file is fine
                config_file = default_config_path()
                self.config.read((config_file,))
            else:
                config_file = os.path.expanduser(config_file)
                with open(config_file, 'r') as fd:
                    self.config.read_file(fd, source=config_file)
        except OSError as exp:
            raise ConfigFileError('Could not read config file %r: %s' % (config_file, exp))
        except configparser.Error as exp:
            raise ConfigFileError('Invalid config file %r: %s' % (config_file, exp))

        self.path = config_file

        section = self.config['client']
        try:
            self.timeout = section.getfloat('timeout')
            self.strict = section.getboolean('strict')
        except ValueError as exp:
            raise ConfigFileError('Invalid value in config file: %s' % exp)

        if self.timeout <= 0:
            raise ConfigFileError('timeout must be positive; got %s' % section['timeout'])

        self.public_key_file = section['public_key_file'] or None
        if self.public_key_file is not None:
            self.public_key_file = os.path.expanduser(self.public_key_file)
        self.socks5_proxy = section['socks5_proxy'] or None
