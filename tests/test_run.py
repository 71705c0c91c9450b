import run


class _StubApp:
    def __init__(self):
        self.calls = []

        class _Logger:
            def info(self, *args):
                pass

        self.logger = _Logger()

    def run(self, **kwargs):
        self.calls.append(kwargs)


def test_parser_defaults():
    args = run.build_parser().parse_args([])
    assert (args.host, args.port, args.debug) == ("0.0.0.0", 3001, False)


def test_main_passes_arguments_to_app(monkeypatch):
    stub = _StubApp()
    monkeypatch.setattr(run, "create_app", lambda: stub)

    run.main(["--host", "127.0.0.1", "--port", "8080", "--debug"])

    assert stub.calls == [{"host": "127.0.0.1", "port": 8080, "debug": True}]
