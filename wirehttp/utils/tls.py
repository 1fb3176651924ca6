"""
TLS utilities for the socket adapter.

This module builds SSL contexts from the ``ssl_*`` request configuration.
"""

from typing import Optional

try:
    import ssl
except ImportError:  # Python built without OpenSSL
    ssl = None


def tls_available() -> bool:
    """Return whether this interpreter can open TLS connections."""
    return ssl is not None


def create_ssl_context(
    alpn_protocols: Optional[list[str]] = None,
    verify: bool = True,
    check_hostname: bool = True,
    cafile: Optional[str] = None,
    capath: Optional[str] = None,
) -> "ssl.SSLContext":
    """Create an SSL context for HTTP connections.
    
    Args:
        alpn_protocols: List of ALPN protocols to advertise (e.g., ['http/1.1'])
        verify: Whether to verify server certificates
        check_hostname: Whether to match the certificate against the host name
        cafile: CA bundle file
        capath: Directory with CA certificates
        
    Returns:
        Configured SSL context
    """
    context = ssl.create_default_context(
        ssl.Purpose.SERVER_AUTH, cafile=cafile, capath=capath
    )
    
    # check_hostname has to be switched off before verify_mode can be relaxed
    context.check_hostname = bool(verify and check_hostname)
    if not verify:
        context.verify_mode = ssl.CERT_NONE
    
    if alpn_protocols:
        context.set_alpn_protocols(alpn_protocols)
    
    return context


def get_http1_ssl_context(config: dict) -> "ssl.SSLContext":
    """Get an SSL context configured for HTTP/1.x from request configuration.
    
    Args:
        config: Request configuration mapping
        
    Returns:
        SSL context for HTTP/1.1
    """
    return create_ssl_context(
        alpn_protocols=['http/1.1'],
        verify=config.get('ssl_verify_peer', True),
        check_hostname=config.get('ssl_verify_host', True),
        cafile=config.get('ssl_cafile'),
        capath=config.get('ssl_capath'),
    )


def get_negotiated_protocol(sock) -> Optional[str]:
    """Get the negotiated ALPN protocol of a TLS socket.
    
    Args:
        sock: Socket of an established connection
        
    Returns:
        Negotiated protocol or None if not available
    """
    try:
        return sock.selected_alpn_protocol()
    except AttributeError:
        return None
