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

import http.client
import logging
import socket
import urllib.error
import urllib.request

import resttimeclient
from resttimeclient.errors import ClientError

DEFAULT_TIMEOUT = 10

MAX_RESPONSE_SIZE = 64 * 1024

class FetchError(ClientError):
    """Could not retrieve a response from the time server"""

    def __init__(self, url, reason):
        super().__init__('%s: %s' % (url, reason))
        self.url = url
        self.reason = reason


class RemoteTimeServer:
    """Remote time server interface"""

    def __init__(self, url, user_agent="REST-Time-Client/%s" % resttimeclient.__version__):
        if not isinstance(url, str):
            raise TypeError("URL must be a string")
        self.url = url

        self.request_headers = {"Accept": "application/json",
                                "User-Agent": user_agent}

    def fetch(self, timeout=DEFAULT_TIMEOUT):
        """Fetch the signed timestamp envelope

        Returns the raw response body. The HTTP status is not checked: an
        error response's body is returned just the same, and it's up to the
        caller to decide whether it makes any sense.

        Raises FetchError on any transport-level failure, including timeouts
        and bodies larger than MAX_RESPONSE_SIZE.
        """
        try:
            req = urllib.request.Request(self.url, headers=self.request_headers)
            try:
                resp = urllib.request.urlopen(req, timeout=timeout)
            except urllib.error.HTTPError as exp:
                logging.warning("Time server %s answered with HTTP status %d" % (self.url, exp.code))
                resp = exp

            with resp:
                logging.debug("Got HTTP status %d from %s" % (resp.getcode(), self.url))
                resp_bytes = resp.read(MAX_RESPONSE_SIZE + 1)

        except urllib.error.URLError as exp:
            raise FetchError(self.url, exp.reason)
        except socket.timeout:
            raise FetchError(self.url, 'timed out after %s seconds' % timeout)
        except (OSError, http.client.HTTPException, ValueError) as exp:
            raise FetchError(self.url, exp)

        if len(resp_bytes) > MAX_RESPONSE_SIZE:
            raise FetchError(self.url, 'response exceeded size limit of %d bytes' % MAX_RESPONSE_SIZE)

        logging.debug("Read %d bytes from %s" % (len(resp_bytes), self.url))
        return resp_bytes


def fetch(url, timeout=DEFAULT_TIMEOUT):
    """Fetch the raw response body from url"""
    return RemoteTimeServer(url).fetch(timeout=timeout)
