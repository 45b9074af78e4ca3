import hashlib


def sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def client_data_hash(client_data: bytes) -> bytes:
    return sha256(client_data)


def signed_message(authenticator_data: bytes, client_data: bytes) -> bytes:
    # authenticatorData || SHA-256(clientDataJSON), no separators
    return bytes(authenticator_data) + client_data_hash(client_data)
