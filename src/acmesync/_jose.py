import hashlib
import sys
from collections.abc import Mapping
from typing import Any, NewType

import orjson
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.hazmat.primitives.asymmetric.padding import PKCS1v15
from cryptography.hazmat.primitives.asymmetric.utils import decode_dss_signature

from acmesync._types import AccountKeyTypes
from acmesync._utils import b64_encode

if sys.version_info >= (3, 11):
    from typing import assert_never
else:
    from typing_extensions import assert_never

JWK = NewType('JWK', Mapping[str, Any])

# curve name -> (JWK "crv", JWS "alg", digest)
_CURVES: Mapping[str, tuple[str, str, type[hashes.HashAlgorithm]]] = {
    'secp256r1': ('P-256', 'ES256', hashes.SHA256),
    'secp384r1': ('P-384', 'ES384', hashes.SHA384),
    'secp521r1': ('P-521', 'ES512', hashes.SHA512),
}


def make_jwk(key: AccountKeyTypes) -> JWK:
    """Public JWK of the account key (RFC 7517)."""
    if isinstance(key, ec.EllipticCurvePrivateKey):
        numbers = key.public_key().public_numbers()
        size = _coordinate_size(key.curve)
        return JWK(
            {
                'kty': 'EC',
                'crv': _CURVES[key.curve.name][0],
                'x': _encode_int(numbers.x, size),
                'y': _encode_int(numbers.y, size),
            }
        )

    if isinstance(key, rsa.RSAPrivateKey):
        numbers = key.public_key().public_numbers()
        return JWK({'kty': 'RSA', 'e': _encode_int(numbers.e), 'n': _encode_int(numbers.n)})

    assert_never(key)


def jwk_thumbprint(jwk: JWK) -> str:
    """RFC 7638 thumbprint, base64url encoded."""
    return b64_encode(hashlib.sha256(orjson.dumps(jwk, option=orjson.OPT_SORT_KEYS)).digest())


def jws_encode(payload: bytes, key: AccountKeyTypes, headers: Mapping[str, Any]) -> bytes:
    """Serialize ``payload`` as a flattened JWS signed with ``key``."""
    alg, sign = _signer(key)
    protected = b64_encode(orjson.dumps({**headers, 'alg': alg}))
    encoded_payload = b64_encode(payload)
    signature = sign(f'{protected}.{encoded_payload}'.encode('ascii'))
    return orjson.dumps({'protected': protected, 'payload': encoded_payload, 'signature': b64_encode(signature)})


def _signer(key: AccountKeyTypes) -> tuple[str, Any]:
    if isinstance(key, rsa.RSAPrivateKey):
        return 'RS256', lambda data: key.sign(data, PKCS1v15(), hashes.SHA256())

    if isinstance(key, ec.EllipticCurvePrivateKey):
        _, alg, digest = _CURVES[key.curve.name]
        size = _coordinate_size(key.curve)

        def sign(data: bytes) -> bytes:
            # JWS wants the raw r || s form, not DER
            r, s = decode_dss_signature(key.sign(data, ec.ECDSA(digest())))
            return r.to_bytes(size, 'big') + s.to_bytes(size, 'big')

        return alg, sign

    assert_never(key)


def _coordinate_size(curve: ec.EllipticCurve) -> int:
    return (curve.key_size + 7) // 8


def _encode_int(number: int, size: int | None = None) -> str:
    size = size or (number.bit_length() + 7) // 8
    return b64_encode(number.to_bytes(size, 'big'))
