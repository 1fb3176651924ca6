"""
Main CLI entry point for wirehttp.

This module provides the command-line interface for sending a single
HTTP request through the socket adapter and inspecting the response.
"""

import logging
import sys
from typing import List, Optional

import click
from rich.console import Console
from rich.markup import escape

from wirehttp import __version__
from wirehttp.adapters import SocketAdapter
from wirehttp.exceptions import RequestError
from wirehttp.observers import BodyWriter, EventLogger
from wirehttp.pool import ConnectionPool
from wirehttp.request import Request
from wirehttp.utils.logging import get_logger, setup_logging

console = Console()


@click.group()
@click.version_option(__version__)
@click.option('--debug', is_flag=True, help='Enable debug logging')
@click.option('--log-file', help='Log file path')
def cli(debug: bool, log_file: Optional[str]):
    """wirehttp: HTTP/1.x requests over raw sockets."""
    setup_logging(level=logging.DEBUG if debug else logging.WARNING, log_file=log_file, verbose=debug)


@cli.command()
@click.argument('url')
@click.option('--method', '-X', default='GET', help='HTTP method to use')
@click.option('--header', '-H', multiple=True, help='HTTP header "Name: value" (can be used multiple times)')
@click.option('--data', '-d', help='HTTP request body')
@click.option('--timeout', '-t', default=30.0, help='Read timeout in seconds')
@click.option('--connect-timeout', '-c', default=10.0, help='Connection timeout in seconds')
@click.option('--follow', '-L', is_flag=True, help='Follow redirects')
@click.option('--max-redirects', default=5, help='Maximum number of redirects to follow')
@click.option('--proxy', help='HTTP proxy URL (http://[user:password@]host:port)')
@click.option('--user', '-u', help='Credentials for Basic authentication (user:password)')
@click.option('--http1.0', 'http10', is_flag=True, help='Use HTTP/1.0')
@click.option('--insecure', '-k', is_flag=True, help='Do not verify TLS certificates')
@click.option('--output', '-o', type=click.Path(dir_okay=False), help='Write the decoded body to a file')
@click.option('--verbose', '-v', is_flag=True, help='Log lifecycle events and print response headers')
def request(
    url: str,
    method: str,
    header: List[str],
    data: Optional[str],
    timeout: float,
    connect_timeout: float,
    follow: bool,
    max_redirects: int,
    proxy: Optional[str],
    user: Optional[str],
    http10: bool,
    insecure: bool,
    output: Optional[str],
    verbose: bool,
):
    """Send an HTTP request to URL and print the response.
    
    URL should be in the format http(s)://hostname[:port]/path
    """
    logger = get_logger()

    try:
        req = Request(url, method.upper(), {
            'timeout': timeout,
            'connect_timeout': connect_timeout,
            'follow_redirects': follow,
            'max_redirects': max_redirects,
            'protocol_version': '1.0' if http10 else '1.1',
            'ssl_verify_peer': not insecure,
            'ssl_verify_host': not insecure,
        })
        if proxy:
            req.set_config('proxy', proxy)
        for h in header:
            if ':' not in h:
                console.print(f"[bold yellow]Warning:[/] Ignoring invalid header format: {h}")
                continue
            req.set_header(h)
        if user:
            name, _, password = user.partition(':')
            req.set_auth(name, password)
        if data is not None:
            req.set_body(data.encode('utf-8'))
    except RequestError as e:
        console.print(f"[bold red]Error:[/] {e}")
        sys.exit(1)

    if verbose:
        req.attach(EventLogger(level=logging.WARNING))

    pool = ConnectionPool()
    req.set_adapter(SocketAdapter(pool))
    stream = None
    try:
        if output:
            try:
                stream = open(output, "wb")
            except OSError as e:
                console.print(f"[bold red]Error opening output file:[/] {e}")
                sys.exit(1)
            req.set_config('store_body', False)
            req.attach(BodyWriter(stream))
        response = req.send()
    except RequestError as e:
        console.print(f"[bold red]Error:[/] {e}")
        logger.debug("Request failed", exc_info=True)
        sys.exit(1)
    finally:
        if stream is not None:
            stream.close()
        pool.close_all()

    console.print(f"[bold green]Status:[/] HTTP/{response.version} {response.status} {response.reason_phrase}")
    if response.effective_url and response.effective_url != req.get_url():
        console.print(f"[bold green]Effective URL:[/] {response.effective_url}")

    if verbose:
        console.print("\n[bold green]Response headers:[/]")
        for name, value in response.headers.items():
            console.print(f"  [blue]{escape(name)}:[/] {escape(value)}", highlight=False)

    if output:
        console.print(f"[bold green]Response saved to:[/] {output}")
        return

    try:
        body = response.body
    except RequestError as e:
        console.print(f"[bold red]Error:[/] {e}")
        sys.exit(1)
    text = body.decode('utf-8', errors='replace')
    console.print()
    console.print(text, markup=False, highlight=False)


def main():
    """Main entry point for the CLI."""
    try:
        cli()
    except Exception as e:
        console.print(f"[bold red]Unexpected error:[/] {e}")
        get_logger().exception("Unhandled exception in main")
        sys.exit(1)


if __name__ == '__main__':
    main()
