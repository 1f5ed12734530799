"""TLS settings for clients and servers, with cipher and version lookups."""

from __future__ import annotations

import ssl
from dataclasses import dataclass, field

TLS_VERSIONS: dict[str, int] = {
    "TLS10": 0x0301,
    "TLS11": 0x0302,
    "TLS12": 0x0303,
    "TLS13": 0x0304,
}

# IANA name -> (suite id, OpenSSL name; None for TLS 1.3 suites)
TLS_CIPHERS: dict[str, tuple[int, str | None]] = {
    "TLS_ECDHE_RSA_WITH_CHACHA20_POLY1305": (0xCCA8, "ECDHE-RSA-CHACHA20-POLY1305"),
    "TLS_ECDHE_ECDSA_WITH_CHACHA20_POLY1305": (0xCCA9, "ECDHE-ECDSA-CHACHA20-POLY1305"),
    "TLS_ECDHE_RSA_WITH_AES_128_GCM_SHA256": (0xC02F, "ECDHE-RSA-AES128-GCM-SHA256"),
    "TLS_ECDHE_ECDSA_WITH_AES_128_GCM_SHA256": (0xC02B, "ECDHE-ECDSA-AES128-GCM-SHA256"),
    "TLS_ECDHE_RSA_WITH_AES_256_GCM_SHA384": (0xC030, "ECDHE-RSA-AES256-GCM-SHA384"),
    "TLS_ECDHE_ECDSA_WITH_AES_256_GCM_SHA384": (0xC02C, "ECDHE-ECDSA-AES256-GCM-SHA384"),
    "TLS_ECDHE_RSA_WITH_AES_128_CBC_SHA256": (0xC027, "ECDHE-RSA-AES128-SHA256"),
    "TLS_ECDHE_RSA_WITH_AES_128_CBC_SHA": (0xC013, "ECDHE-RSA-AES128-SHA"),
    "TLS_ECDHE_ECDSA_WITH_AES_128_CBC_SHA256": (0xC023, "ECDHE-ECDSA-AES128-SHA256"),
    "TLS_ECDHE_ECDSA_WITH_AES_128_CBC_SHA": (0xC009, "ECDHE-ECDSA-AES128-SHA"),
    "TLS_ECDHE_RSA_WITH_AES_256_CBC_SHA": (0xC014, "ECDHE-RSA-AES256-SHA"),
    "TLS_ECDHE_ECDSA_WITH_AES_256_CBC_SHA": (0xC00A, "ECDHE-ECDSA-AES256-SHA"),
    "TLS_RSA_WITH_AES_128_GCM_SHA256": (0x009C, "AES128-GCM-SHA256"),
    "TLS_RSA_WITH_AES_256_GCM_SHA384": (0x009D, "AES256-GCM-SHA384"),
    "TLS_RSA_WITH_AES_128_CBC_SHA256": (0x003C, "AES128-SHA256"),
    "TLS_RSA_WITH_AES_128_CBC_SHA": (0x002F, "AES128-SHA"),
    "TLS_RSA_WITH_AES_256_CBC_SHA": (0x0035, "AES256-SHA"),
    "TLS_ECDHE_RSA_WITH_3DES_EDE_CBC_SHA": (0xC012, "ECDHE-RSA-DES-CBC3-SHA"),
    "TLS_RSA_WITH_3DES_EDE_CBC_SHA": (0x000A, "DES-CBC3-SHA"),
    "TLS_RSA_WITH_RC4_128_SHA": (0x0005, "RC4-SHA"),
    "TLS_ECDHE_RSA_WITH_RC4_128_SHA": (0xC011, "ECDHE-RSA-RC4-SHA"),
    "TLS_ECDHE_ECDSA_WITH_RC4_128_SHA": (0xC007, "ECDHE-ECDSA-RC4-SHA"),
    "TLS_AES_128_GCM_SHA256": (0x1301, None),
    "TLS_AES_256_GCM_SHA384": (0x1302, None),
    "TLS_CHACHA20_POLY1305_SHA256": (0x1303, None),
}

_CLIENT_MIN_VERSIONS = {
    "1.0": ssl.TLSVersion.TLSv1,
    "1.1": ssl.TLSVersion.TLSv1_1,
    "1.2": ssl.TLSVersion.TLSv1_2,
    "1.3": ssl.TLSVersion.TLSv1_3,
}


def parse_ciphers(ciphers: list[str]) -> list[int]:
    """Suite ids for cipher names; raises ValueError on an unknown name."""
    suites = []
    for cipher in ciphers:
        if cipher not in TLS_CIPHERS:
            raise ValueError(f"unsupported cipher {cipher!r}")
        suites.append(TLS_CIPHERS[cipher][0])
    return suites


def parse_tls_version(version: str) -> int:
    """Protocol number for a name such as ``TLS12``."""
    if version in TLS_VERSIONS:
        return TLS_VERSIONS[version]
    raise ValueError(f"unsupported version {version!r}")


def _load_ca_files(context: ssl.SSLContext, cert_files: list[str]) -> None:
    for cert_file in cert_files:
        try:
            with open(cert_file, "rb") as handle:
                pem = handle.read()
        except OSError as err:
            raise ValueError(f"could not read certificate {cert_file!r}: {err}") from err
        try:
            context.load_verify_locations(cadata=pem.decode("ascii", errors="replace"))
        except (ssl.SSLError, ValueError) as err:
            raise ValueError(f"could not parse any PEM certificates {cert_file!r}: {err}") from err


def _load_certificate(context: ssl.SSLContext, cert_file: str, key_file: str, key_pwd: str) -> None:
    try:
        context.load_cert_chain(cert_file, key_file, password=key_pwd or None)
    except (OSError, ssl.SSLError) as err:
        raise ValueError(f"could not load keypair {cert_file}:{key_file}: {err}") from err


@dataclass
class ClientConfig:
    """TLS settings for outgoing connections."""

    tls_ca: str = ""
    tls_cert: str = ""
    tls_key: str = ""
    tls_key_pwd: str = ""
    insecure_skip_verify: bool = False
    server_name: str = ""
    tls_min_version: str = ""

    def tls_context(self) -> ssl.SSLContext:
        context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
        context.options |= getattr(ssl, "OP_NO_RENEGOTIATION", 0)
        if self.insecure_skip_verify:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        if self.tls_ca:
            _load_ca_files(context, [self.tls_ca])
        else:
            context.load_default_certs()
        if self.tls_cert and self.tls_key:
            _load_certificate(context, self.tls_cert, self.tls_key, self.tls_key_pwd)
        version = _CLIENT_MIN_VERSIONS.get(self.tls_min_version)
        if version is not None:
            context.minimum_version = version
        return context


@dataclass
class ServerConfig:
    """TLS settings for a listening server."""

    tls_cert: str = ""
    tls_key: str = ""
    tls_key_pwd: str = ""
    tls_allowed_ca_certs: list[str] = field(default_factory=list)
    tls_cipher_suites: list[str] = field(default_factory=list)
    tls_min_version: str = ""
    tls_max_version: str = ""
    tls_allowed_dns_names: list[str] = field(default_factory=list)

    def tls_context(self) -> ssl.SSLContext | None:
        """A server context, or None when TLS is not configured."""
        if not self.tls_cert and not self.tls_key and not self.tls_allowed_ca_certs:
            return None

        context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)

        if self.tls_allowed_ca_certs:
            _load_ca_files(context, self.tls_allowed_ca_certs)
            context.verify_mode = ssl.CERT_REQUIRED

        if self.tls_cert and self.tls_key:
            _load_certificate(context, self.tls_cert, self.tls_key, self.tls_key_pwd)

        if self.tls_cipher_suites:
            joined = ",".join(self.tls_cipher_suites)
            try:
                parse_ciphers(self.tls_cipher_suites)
            except ValueError as err:
                raise ValueError(f"could not parse server cipher suites {joined}: {err}") from err
            names = [TLS_CIPHERS[c][1] for c in self.tls_cipher_suites if TLS_CIPHERS[c][1]]
            if names:
                try:
                    context.set_ciphers(":".join(names))
                except ssl.SSLError as err:
                    raise ValueError(
                        f"could not parse server cipher suites {joined}: {err}"
                    ) from err

        max_version = min_version = 0
        if self.tls_max_version:
            try:
                max_version = parse_tls_version(self.tls_max_version)
            except ValueError as err:
                raise ValueError(
                    f"could not parse tls max version {self.tls_max_version!r}: {err}"
                ) from err
        if self.tls_min_version:
            try:
                min_version = parse_tls_version(self.tls_min_version)
            except ValueError as err:
                raise ValueError(
                    f"could not parse tls min version {self.tls_min_version!r}: {err}"
                ) from err
        if min_version and max_version and min_version > max_version:
            raise ValueError(
                f"tls min version {min_version!r} can't be greater than "
                f"tls max version {max_version!r}"
            )
        if max_version:
            context.maximum_version = ssl.TLSVersion(max_version)
        if min_version:
            context.minimum_version = ssl.TLSVersion(min_version)
        return context

    def verify_peer_names(self, dns_names: list[str]) -> str:
        """Return the first peer DNS name that is allowed; raise if none is."""
        for name in dns_names:
            if name in self.tls_allowed_dns_names:
                return name
        raise ValueError(f"peer certificate not in allowed DNS Name list: {dns_names}")