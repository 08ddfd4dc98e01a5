import json
import unittest

import numpy as np

from deltaweights.infrastructure.encoding import ndarray_to_payload, payload_to_ndarray


class TestB64Encoding(unittest.TestCase):
    def test_matrix_survives_json(self):
        arr = np.array([[0.1, -2.5, 1e-300], [np.pi, 3.0, -0.0]])
        payload = json.loads(json.dumps(ndarray_to_payload(arr)))

        self.assertEqual(payload["shape"], [2, 3])
        self.assertEqual(payload["order"], "C")
        out = payload_to_ndarray(payload)
        self.assertEqual(out.dtype, np.float64)
        np.testing.assert_array_equal(out, arr)

    def test_non_contiguous_and_integer_inputs_are_normalized(self):
        arr = np.arange(6, dtype=np.int32).reshape(2, 3).T
        out = payload_to_ndarray(ndarray_to_payload(arr))
        np.testing.assert_array_equal(out, arr.astype(np.float64))
        self.assertTrue(out.flags["C_CONTIGUOUS"])

    def test_decoded_array_is_writable(self):
        out = payload_to_ndarray(ndarray_to_payload(np.zeros(3)))
        out[0] = 1.0
        self.assertTrue(out.flags["OWNDATA"])

    def test_bad_byte_length_raises(self):
        payload = ndarray_to_payload(np.zeros(4))
        payload["shape"] = [5]
        with self.assertRaises(ValueError):
            payload_to_ndarray(payload)

    def test_unsupported_order_raises(self):
        payload = ndarray_to_payload(np.zeros(4))
        payload["order"] = "F"
        with self.assertRaises(ValueError):
            payload_to_ndarray(payload)


if __name__ == "__main__":
    unittest.main()
