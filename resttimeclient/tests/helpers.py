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

"""Test keys and a local time server"""

import base64
import hashlib
import http.server
import json
import os
import shutil
import tempfile
import threading
import time
import unittest
import unittest.mock

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from resttimeclient.timestamp import TimestampPayload

TEST_PAYLOAD = TimestampPayload('1.0', '2024-01-01', '00:00:00', 1704067200)

TEST_PAYLOAD_BYTES = b'{"swVersion":"1.0","dateIsoUtc":"2024-01-01","time24Utc":"00:00:00","dateTimeEpocUtc":1704067200}'

_test_key = None

def get_test_key():
    """RSA key pair shared by all tests; generating keys is slow"""
    global _test_key
    if _test_key is None:
        _test_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return _test_key


def sign(msg, key=None):
    key = key or get_test_key()
    return key.sign(msg, padding.PKCS1v15(), hashes.SHA256())


def write_public_key(path, key=None, encoding=serialization.Encoding.PEM,
                     format=serialization.PublicFormat.SubjectPublicKeyInfo):
    key = key or get_test_key()
    with open(path, 'wb') as fd:
        fd.write(key.public_key().public_bytes(encoding, format))
    return path


def make_envelope_body(payload_json=None, sig=None, digest=None):
    """Serialize an envelope the way the time server does

    Whitespace is deliberately different from the canonical encoding.
    """
    if payload_json is None:
        payload_json = TEST_PAYLOAD.to_json()
    if sig is None:
        sig = sign(TEST_PAYLOAD_BYTES)
    if digest is None:
        digest = hashlib.sha256(TEST_PAYLOAD_BYTES).hexdigest()

    return json.dumps({'data': payload_json,
                       'digest': digest,
                       'signature': base64.standard_b64encode(sig).decode('utf8')},
                      indent=2).encode('utf8')


class _TimeServerHandler(http.server.BaseHTTPRequestHandler):
    def do_GET(self):
        status, body, delay = self.server.canned_response
        self.server.requests.append(self.path)
        if delay:
            time.sleep(delay)

        self.send_response(status)
        self.send_header('Content-Type', 'application/json')
        self.send_header('Content-Length', str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        pass


class TimeServer:
    """Serves one canned response on 127.0.0.1, for use as a context manager"""

    def __init__(self, body=b'', status=200, delay=0):
        self.httpd = http.server.HTTPServer(('127.0.0.1', 0), _TimeServerHandler)
        self.httpd.canned_response = (status, body, delay)
        self.httpd.requests = []
        self.url = 'http://127.0.0.1:%d/time' % self.httpd.server_address[1]

    @property
    def requests(self):
        return self.httpd.requests

    def __enter__(self):
        self.thread = threading.Thread(target=self.httpd.serve_forever, daemon=True)
        self.thread.start()
        return self

    def __exit__(self, *exc_info):
        self.httpd.shutdown()
        self.httpd.server_close()
        self.thread.join()


def unused_url():
    """URL of a local port nothing listens on"""
    httpd = http.server.HTTPServer(('127.0.0.1', 0), _TimeServerHandler)
    port = httpd.server_address[1]
    httpd.server_close()
    return 'http://127.0.0.1:%d/time' % port


class ClientTestCase(unittest.TestCase):
    """Runs each test in a scratch directory, without HTTP proxies"""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp(prefix='tmpRestTimeClient')

        self.old_cwd = os.getcwd()
        os.chdir(self.temp_dir)

        env_patcher = unittest.mock.patch.dict(os.environ, {'no_proxy': '*', 'NO_PROXY': '*'})
        env_patcher.start()
        self.addCleanup(env_patcher.stop)

    def tearDown(self):
        os.chdir(self.old_cwd)
        shutil.rmtree(self.temp_dir)

    def path(self, *names):
        return os.path.join(self.temp_dir, *names)
