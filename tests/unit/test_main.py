import hashlib
import io
import json
import os
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout

import bencodepy

from minitorrent.main import main


class TestMain(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.tmpdir.name, 'test.torrent')
        self.info = {
            b'name': b'file.txt',
            b'length': 1024,
            b'piece length': 512,
            b'pieces': b'a' * 20 + b'b' * 20,
        }
        with open(self.path, 'wb') as f:
            f.write(bencodepy.encode({b'announce': b'http://tracker.example/announce', b'info': self.info}))

    def tearDown(self):
        self.tmpdir.cleanup()

    def run_main(self, argv):
        stdout, stderr = io.StringIO(), io.StringIO()
        with redirect_stdout(stdout), redirect_stderr(stderr):
            code = main(argv)
        return code, stdout.getvalue(), stderr.getvalue()

    def test_prints_summary(self):
        code, out, _ = self.run_main([self.path])
        info_hash = hashlib.sha1(bencodepy.encode(self.info)).hexdigest()

        self.assertEqual(code, 0)
        self.assertEqual(out.splitlines(), [
            "Name: file.txt",
            "Announce URL: http://tracker.example/announce",
            "File Size: 1024 bytes",
            "Piece Length: 512 bytes",
            "Number of Pieces: 2",
            f"Info Hash: {info_hash}",
        ])

    def test_json_output(self):
        code, out, _ = self.run_main([self.path, '--json'])
        payload = json.loads(out)

        self.assertEqual(code, 0)
        self.assertEqual(payload['name'], 'file.txt')
        self.assertEqual(payload['length'], 1024)
        self.assertEqual(len(payload['piece_hashes']), 2)
        self.assertEqual(payload['info_hash'], hashlib.sha1(bencodepy.encode(self.info)).hexdigest())

    def test_missing_file_exits_non_zero(self):
        code, out, err = self.run_main([os.path.join(self.tmpdir.name, 'missing.torrent')])
        self.assertEqual(code, 1)
        self.assertEqual(out, '')
        self.assertIn('Error parsing torrent file', err)

    def test_invalid_torrent_exits_non_zero(self):
        with open(self.path, 'wb') as f:
            f.write(b'd8:announce3:urle')
        code, _, err = self.run_main([self.path])
        self.assertEqual(code, 1)
        self.assertIn("'info'", err)

    def test_usage_error(self):
        with self.assertRaises(SystemExit) as cm:
            self.run_main([])
        self.assertEqual(cm.exception.code, 2)

    def test_oversized_length_exits_non_zero(self):
        with open(self.path, 'wb') as f:
            f.write(b'd8:announce' + b'9' * 5000 + b':xe')
        code, _, err = self.run_main([self.path])
        self.assertEqual(code, 1)
        self.assertIn('exceeds data bounds', err)
