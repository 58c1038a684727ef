"""
Tests for JSON serialization of parameters, keys and ciphertexts.
"""

import unittest
import os
import sys
import json
import random
import logging

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import fe_codec
from ddh_fe import DDH
from ddh_multi import DDHMulti
from fe_errors import CodecError, ParameterError
from group_params import generate_group_params

logging.basicConfig(level=logging.ERROR)


class TestCodec(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.params = generate_group_params(3, 64, 16, capacity=2, rng=random.Random(31))

    def test_single_input_values_survive_transport(self):
        ddh = DDH(self.params)
        msk, mpk = ddh.generate_master_keys()
        ciphertext = ddh.encrypt([5, 2, 9], mpk)
        key = ddh.derive_key(msk, [1, 0, 4])

        params = fe_codec.loads(fe_codec.dumps(self.params))
        self.assertEqual(params, self.params)
        self.assertEqual(fe_codec.loads(fe_codec.dumps(msk)), msk)
        self.assertEqual(fe_codec.loads(fe_codec.dumps(mpk)), mpk)
        self.assertEqual(fe_codec.loads(fe_codec.dumps(key)), key)

        # Decrypt on the "receiving" side with decoded values only
        receiver = DDH(params)
        decoded_ct = fe_codec.loads(fe_codec.dumps(ciphertext))
        decoded_key = fe_codec.loads(fe_codec.dumps(key))
        self.assertEqual(receiver.decrypt(decoded_ct, decoded_key, [1, 0, 4]), 41)

    def test_multi_input_values_survive_transport(self):
        scheme = DDHMulti(2, self.params)
        mpk, msk = scheme.generate_master_keys()
        ys = [[1, 1, 1], [2, 0, 0]]
        key = scheme.derive_key(msk, ys)

        self.assertEqual(fe_codec.loads(fe_codec.dumps(mpk)), mpk)
        self.assertEqual(fe_codec.loads(fe_codec.dumps(msk)), msk)
        self.assertEqual(fe_codec.loads(fe_codec.dumps(key)), key)

        ciphers = scheme.encrypt_all([[1, 2, 3], [4, 5, 6]], mpk, msk.otp)
        decoded = [fe_codec.loads(fe_codec.dumps(c)) for c in ciphers]
        self.assertEqual(scheme.decrypt(decoded, fe_codec.loads(fe_codec.dumps(key)), ys), 6 + 8)

    def test_integers_are_decimal_strings(self):
        doc = json.loads(fe_codec.dumps(self.params))
        self.assertEqual(doc['type'], 'group_params')
        self.assertEqual(doc['p'], str(self.params.p))
        self.assertEqual(doc['vec_len'], 3)

    def test_malformed_documents(self):
        with self.assertRaises(CodecError):
            fe_codec.loads("not json")
        with self.assertRaises(CodecError):
            fe_codec.loads("[]")
        with self.assertRaises(CodecError):
            fe_codec.loads('{"type": "unknown"}')
        with self.assertRaises(CodecError):
            fe_codec.loads('{"values": ["1"]}')
        with self.assertRaises(CodecError):
            fe_codec.loads('{"type": "ciphertext", "c0": "12"}')
        with self.assertRaises(CodecError):
            fe_codec.loads('{"type": "ciphertext", "c0": "-12", "cs": []}')
        with self.assertRaises(CodecError):
            fe_codec.loads('{"type": "master_public_key", "values": [12]}')
        with self.assertRaises(CodecError):
            fe_codec.loads('{"type": "multi_master_secret_key", "msks": [["1"]], "otp": []}')

    def test_invalid_group_params_are_rejected(self):
        doc = fe_codec.to_dict(self.params)
        doc['g'] = '1'
        with self.assertRaises(ParameterError):
            fe_codec.from_dict(doc)

    def test_unsupported_type(self):
        with self.assertRaises(TypeError):
            fe_codec.dumps("plain string")


if __name__ == "__main__":
    unittest.main()
