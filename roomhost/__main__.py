import argparse
import asyncio
import logging

from cardtable.models import GameType, RuleConfig

from .server import RoomServer


def main() -> None:
    # Defaults apply to every room unless the create-room message overrides them.
    parser = argparse.ArgumentParser(description="Card table ledger room host")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8765)
    parser.add_argument("--game", choices=[game.value for game in GameType], default=GameType.NIUNIU.value)
    parser.add_argument("--base-bet", type=float, default=10)
    parser.add_argument(
        "--ties-favor-dealer",
        action="store_true",
        help="Niu Niu ties go to the dealer instead of pushing",
    )
    parser.add_argument("--dealer-stands-on", type=int, default=17)
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()

    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))

    rules = RuleConfig(
        game=GameType(args.game),
        base_bet=args.base_bet,
        ties_favor_dealer=args.ties_favor_dealer,
        dealer_stands_on=args.dealer_stands_on,
    )
    server = RoomServer(rules)
    asyncio.run(server.start(host=args.host, port=args.port))


if __name__ == "__main__":
    main()
