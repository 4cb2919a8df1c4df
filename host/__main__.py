import argparse
import asyncio
import logging

from holdem.models import TableConfig

from .server import HostServer

logging.basicConfig(level=logging.INFO)


def main() -> None:
    parser = argparse.ArgumentParser(description="Sacred poker tournament host")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8765)
    parser.add_argument("--seats", type=int, default=6)
    parser.add_argument("--starting-stack", type=int, default=1000)
    parser.add_argument("--sb", type=int, default=10)
    parser.add_argument("--bb", type=int, default=20)
    parser.add_argument("--ai-delay", type=int, default=1500, help="House seat think time in milliseconds")
    parser.add_argument("--advance-delay", type=int, default=1000, help="Pause before dealing the next street, in milliseconds")
    parser.add_argument("--seed", type=int, default=None)
    args = parser.parse_args()

    config = TableConfig(
        seats=args.seats,
        starting_stack=args.starting_stack,
        sb=args.sb,
        bb=args.bb,
        ai_delay_ms=args.ai_delay,
        advance_delay_ms=args.advance_delay,
        seed=args.seed,
    )

    server = HostServer(config)
    asyncio.run(server.start(host=args.host, port=args.port))


if __name__ == "__main__":
    main()
