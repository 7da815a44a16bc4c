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

class ClientError(Exception):
    """Base class for all errors that terminate a run"""

class ConfigError(ClientError):
    """Invalid or incomplete configuration

    Raised before any network activity, e.g. when no target URL was given.
    """
