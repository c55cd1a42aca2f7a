#!/usr/bin/env python
"""
RFC 6764 - Locating Services for Calendaring and Contacts

Finds the context URL of a CalDAV service from a bare domain name,
using the ``_caldavs._tcp`` SRV record for host and port, and the TXT
record of the same name for the path.  Without a TXT path the
well-known URI ``/.well-known/caldav`` is used.

Only the TLS service is looked up.

SECURITY CONSIDERATIONS:
    Without DNSSEC the answers may be spoofed and point to a server
    controlled by somebody else.  Verify the discovered URL before
    sending credentials to it in sensitive applications.

See: https://datatracker.ietf.org/doc/html/rfc6764
"""
import logging
from typing import List
from typing import Optional
from typing import Tuple

import dns.exception
import dns.resolver

from caldav_sync.lib.error import DiscoveryError

log = logging.getLogger(__name__)

SERVICE = "caldav"
WELL_KNOWN_PATH = "/.well-known/caldav"


def _parse_txt_record(txt_data: str) -> Optional[str]:
    """
    Parse TXT record data to extract the path attribute.

    Examples:
        >>> _parse_txt_record('path=/caldav/')
        '/caldav/'
        >>> _parse_txt_record('path=/caldav/ other=value')
        '/caldav/'
    """
    # TXT records are key=value pairs separated by spaces
    for pair in txt_data.split():
        if "=" in pair:
            key, value = pair.split("=", 1)
            if key.strip().lower() == "path":
                return value.strip()
    return None


def _srv_lookup(name: str) -> List[Tuple[str, int, int, int]]:
    """
    Perform DNS SRV record lookup.

    Returns:
        List of tuples: (hostname, port, priority, weight), sorted by
        priority (lower is better), then by weight (higher first)

    Raises:
        DiscoveryError: on DNS failures other than a missing record
    """
    log.debug("Performing SRV lookup for %s", name)

    try:
        answers = dns.resolver.resolve(name, "SRV")
    except (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer) as e:
        log.debug("SRV lookup failed for %s: %s", name, e)
        return []
    except dns.exception.DNSException as e:
        raise DiscoveryError(url=name, reason=f"SRV lookup failed: {e}") from e

    results = []
    for rdata in answers:
        hostname = str(rdata.target).rstrip(".")
        port = int(rdata.port)
        priority = int(rdata.priority)
        weight = int(rdata.weight)
        log.debug(
            "Found SRV record: %s:%i (priority=%i, weight=%i)",
            hostname,
            port,
            priority,
            weight,
        )
        results.append((hostname, port, priority, weight))

    results.sort(key=lambda x: (x[2], -x[3]))
    return results


def _txt_lookup(name: str) -> Optional[str]:
    """
    Perform DNS TXT record lookup to find the service path.

    Returns:
        The path from the TXT record, or None if not found
    """
    log.debug("Performing TXT lookup for %s", name)

    try:
        answers = dns.resolver.resolve(name, "TXT")
    except dns.exception.DNSException as e:
        log.debug("TXT lookup failed for %s: %s", name, e)
        return None

    for rdata in answers:
        # TXT records can have multiple strings; join them
        txt_data = "".join(
            [s.decode("utf-8") if isinstance(s, bytes) else s for s in rdata.strings]
        )
        log.debug("Found TXT record: %s", txt_data)

        path = _parse_txt_record(txt_data)
        if path:
            return path
    return None


def discover_context_url(domain: str) -> str:
    """
    Find the CalDAV context URL of a domain from DNS.

    Args:
        domain: Domain name, e.g. ``example.com``

    Returns:
        ``https://host/path``, with ``:port`` if the port isn't 443

    Raises:
        DiscoveryError: if the domain has no usable SRV record
    """
    domain = domain.strip().rstrip(".")
    name = f"_{SERVICE}s._tcp.{domain}"

    records = _srv_lookup(name)
    if not records:
        raise DiscoveryError(url=domain, reason="domain doesn't have an SRV record")

    hostname, port, _priority, _weight = records[0]
    ## A target of "." means the service is decidedly not available
    if not hostname:
        raise DiscoveryError(url=domain, reason="empty target in SRV record")

    path = _txt_lookup(name) or WELL_KNOWN_PATH
    if not path.startswith("/"):
        path = "/" + path

    host = hostname if port == 443 else f"{hostname}:{port}"
    url = f"https://{host}{path}"
    log.info("Discovered CalDAV context URL for %s: %s", domain, url)
    return url
