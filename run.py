import argparse

from linkdeck import create_app


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="linkdeck")
    p.add_argument("--host", default="0.0.0.0")
    p.add_argument("--port", type=int, default=3001)
    p.add_argument("--debug", action="store_true")
    return p


def main(argv=None) -> None:
    args = build_parser().parse_args(argv)

    app = create_app()
    app.logger.info("LinkDeck starting on http://%s:%s", args.host, args.port)
    app.run(host=args.host, port=args.port, debug=args.debug)


if __name__ == "__main__":
    main()
