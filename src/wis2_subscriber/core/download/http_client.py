"""
Core HTTP client setup using aiohttp.

Provides the pooled ClientSession shared by every fetch of the process.
Redirect handling and chunked transfer are left to aiohttp.
"""

import aiohttp


def create_session(
    max_connections: int = 100,
    max_connections_per_host: int = 10,
    timeout_total: int = 300,
    timeout_connect: int = 30,
    timeout_sock_read: int = 60,
    timeout_sock_connect: int = 30,
) -> aiohttp.ClientSession:
    """
    Create aiohttp ClientSession with connection pooling and timeouts.

    Connection pool configuration balances performance and resource usage:
    - max_connections: Total concurrent connections across all hosts
    - max_connections_per_host: Concurrent connections to single host

    Timeout configuration prevents indefinite hangs:
    - timeout_total: Total time for the entire request (default: 300s)
    - timeout_connect: Time to establish connection (default: 30s)
    - timeout_sock_read: Time between reads (default: 60s)
    - timeout_sock_connect: Socket connection timeout (default: 30s)

    Returns:
        Configured aiohttp.ClientSession

    Note:
        Caller is responsible for session lifecycle management.
        Use async context manager for automatic cleanup:

        async with create_session() as session:
            result, error = await download_to_file(url, path, session)
    """
    connector = aiohttp.TCPConnector(
        limit=max_connections,
        limit_per_host=max_connections_per_host,
        ssl=True,
        ttl_dns_cache=300,
    )

    timeout = aiohttp.ClientTimeout(
        total=timeout_total,
        connect=timeout_connect,
        sock_read=timeout_sock_read,
        sock_connect=timeout_sock_connect,
    )

    return aiohttp.ClientSession(connector=connector, timeout=timeout)


__all__ = ["create_session"]
