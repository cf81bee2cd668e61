from cryptography.hazmat.primitives.asymmetric import ec, rsa

AccountKeyTypes = rsa.RSAPrivateKey | ec.EllipticCurvePrivateKey
