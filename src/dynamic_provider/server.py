#!/usr/bin/env python3
"""
Dynamic provider endpoint

Binds the RPC listener on an ephemeral loopback port and announces the port
on stdout so the engine can connect.

Usage:
    dynamic-provider <engine-address>

Example:
    dynamic-provider 127.0.0.1:50051
    python -m dynamic_provider 127.0.0.1:50051 --log-level DEBUG
"""
import argparse
import asyncio
import socket
import sys
from typing import List, Optional, TextIO

import uvicorn

from dynamic_provider.core.diagnostics import DiagnosticLogger, normalize_level
from dynamic_provider.interfaces.rpc import create_app
from dynamic_provider.runtime.dispatcher import ProviderDispatcher

DEFAULT_HOST = '127.0.0.1'


def bind_listener(host: str = DEFAULT_HOST, port: int = 0) -> socket.socket:
    """Bind and listen on host:port (port 0 picks an ephemeral port)"""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        sock.bind((host, port))
        sock.listen(128)
    except OSError:
        sock.close()
        raise
    return sock


async def serve(
    engine_address: str,
    host: str = DEFAULT_HOST,
    log_level: str = 'INFO',
    announce: Optional[TextIO] = None,
) -> None:
    """
    Serve the provider until shutdown.

    Args:
        engine_address: Address of the coordinating engine
        host: Interface to bind (loopback by default)
        log_level: Minimum diagnostic level
        announce: Stream the bound port is written to (default: stdout)
    """
    logger = DiagnosticLogger('provider', level=log_level)
    dispatcher = ProviderDispatcher(
        engine_address=engine_address,
        logger=DiagnosticLogger('dispatcher', level=log_level),
    )
    app = create_app(dispatcher)

    sock = bind_listener(host)
    port = sock.getsockname()[1]

    config = uvicorn.Config(
        app,
        host=host,
        port=port,
        log_level=log_level.lower(),
        access_log=False,
        lifespan='off',
    )
    server = uvicorn.Server(config)

    logger.info('Starting provider', host=host, port=port, engine=engine_address)

    async def announce_when_started():
        while not server.started:
            if server.should_exit:
                return
            await asyncio.sleep(0.01)
        stream = announce or sys.stdout
        stream.write(f'{port}\n')
        stream.flush()

    try:
        await asyncio.gather(server.serve(sockets=[sock]), announce_when_started())
    finally:
        sock.close()
        logger.info('Provider stopped', port=port)


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Dynamic resource provider endpoint")
    parser.add_argument("engine", nargs='?', help="Address of the coordinating engine")
    parser.add_argument("--host", default=DEFAULT_HOST,
                        help=f"Interface to listen on (default: {DEFAULT_HOST})")
    parser.add_argument("--log-level", default='INFO',
                        help="Diagnostic log level (default: INFO)")
    args = parser.parse_args(argv)

    if not args.engine:
        print("fatal: missing <engine> address", file=sys.stderr)
        sys.exit(1)

    try:
        log_level = normalize_level(args.log_level)
    except ValueError as e:
        print(f"fatal: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        asyncio.run(serve(args.engine, host=args.host, log_level=log_level))
    except OSError as e:
        print(f"fatal: could not listen on {args.host}: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
