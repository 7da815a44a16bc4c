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

import contextlib
import io
import logging
import logging.handlers
import unittest.mock

import resttimeclient.rtc
from resttimeclient.cmds import EXIT_DECODE_FAILED
from resttimeclient.tests.helpers import ClientTestCase, TimeServer, TEST_PAYLOAD_BYTES, \
    make_envelope_body, write_public_key


class LoggingTestCase(ClientTestCase):
    """Restores the root logger after each test"""

    def setUp(self):
        super().setUp()
        self.old_level = logging.root.level
        self.old_handlers = list(logging.root.handlers)

    def tearDown(self):
        logging.root.setLevel(self.old_level)
        logging.root.handlers[:] = self.old_handlers
        super().tearDown()


class Test_setup_logging(LoggingTestCase):
    def test_levels(self):
        """Verbosity to log level"""
        for verbosity, debug, level in ((0, False, logging.INFO),
                                        (1, False, logging.DEBUG),
                                        (-1, False, logging.WARNING),
                                        (-2, False, logging.ERROR),
                                        (-2, True, logging.DEBUG)):
            resttimeclient.rtc.setup_logging(verbosity, debug=debug)
            self.assertEqual(logging.root.level, level, msg=(verbosity, debug))

    def test_syslog(self):
        """Syslog handler added on request"""
        with unittest.mock.patch('logging.handlers.SysLogHandler') as mock_handler:
            resttimeclient.rtc.setup_logging(0, syslog=True)

        mock_handler.assert_called_once()
        self.assertIn(mock_handler.return_value, logging.root.handlers)

    def test_no_syslog(self):
        """No syslog handler by default"""
        with unittest.mock.patch('logging.handlers.SysLogHandler') as mock_handler:
            resttimeclient.rtc.setup_logging(0)

        mock_handler.assert_not_called()


class Test_main(LoggingTestCase):
    def run_main(self, *raw_args):
        with open(self.path('rtc.conf'), 'w') as fd:
            fd.write('[client]\n')

        argv = ['rtc', '--config', self.path('rtc.conf')] + list(raw_args)
        out = io.StringIO()
        status = 0
        with unittest.mock.patch('sys.argv', argv), \
                contextlib.redirect_stdout(out), contextlib.redirect_stderr(io.StringIO()):
            try:
                resttimeclient.rtc.main()
            except SystemExit as exp:
                status = exp.code
        return (status, out.getvalue())

    def test_verified(self):
        """Complete run with verification"""
        key_path = write_public_key(self.path('key.pub'))
        with TimeServer(make_envelope_body()) as server:
            status, out = self.run_main('-q', '-k', key_path, server.url)

        self.assertEqual(status, 0)
        self.assertIn('Verification successful', out)
        with open(self.path('data.txt'), 'rb') as fd:
            self.assertEqual(fd.read(), TEST_PAYLOAD_BYTES)

    def test_server_error(self):
        """Complete run against a failing server"""
        with TimeServer(b'', status=500) as server:
            status, out = self.run_main(server.url)

        self.assertEqual(status, EXIT_DECODE_FAILED)
