from surfex.models import HTTPPath, Hunt, Port, Target, XSSPoC


def test_add_target_is_insert_once():
    hunt = Hunt()
    first = Target(host="example.com")
    assert hunt.add_target(first)
    assert not hunt.add_target(Target(host="example.com"))
    assert hunt.targets["example.com"] is first
    assert first.hunt is hunt


def test_register_scope_keeps_known_targets():
    hunt = Hunt(scope=["example.com", "10.0.0.0/30", "x!x"])
    known = Target(host="example.com")
    known.add_port(Port(number=80, name="http"))
    hunt.add_target(known)

    added = hunt.register_scope()

    assert [t.host for t in added] == ["10.0.0.1", "10.0.0.2"]
    assert hunt.targets["example.com"] is known
    assert {t.host for t in hunt.pending_targets()} == {"10.0.0.1", "10.0.0.2"}


def test_add_path_first_writer_wins():
    port = Port(number=80, name="http", target=Target(host="example.com"), paths={})
    first = HTTPPath(path="/new", status=200, title="first")
    second = HTTPPath(path="/new", status=200, title="second")

    assert port.add_path(first)
    assert not port.add_path(second)
    assert port.paths["/new"].title == "first"
    assert port.has_path("/new")


def test_add_tech_normalizes_and_dedups():
    hp = HTTPPath(path="/")
    for t in ["Nginx", " nginx ", "", None, "PHP"]:
        hp.add_tech(t)
    assert hp.tech == ["nginx", "php"]


def test_port_url():
    target = Target(host="example.com")
    assert Port(number=8443, tls=True, target=target).url == "https://example.com:8443"
    assert Port(number=80, target=Target(host="::1")).url == "http://[::1]:80"
    assert HTTPPath(path=".env", port=Port(number=80, target=target)).url == "http://example.com:80/.env"


def test_serialized_shape():
    hunt = Hunt(scope=["example.com"])
    target = Target(host="example.com")
    hunt.add_target(target)
    hunt.add_target(Target(host="down.example.com"))
    port = Port(number=80, name="http", paths={})
    target.add_port(port)
    target.add_port(Port(number=22, name="ssh", version="SSH-2.0-OpenSSH_9.3"))
    port.add_path(HTTPPath(path="/", status=200, content_type="text/html", title="Example", tech=["nginx"],
                           xss=[XSSPoC(param="q", payload="<x>", severity="Medium")]))

    d = hunt.to_dict()

    assert d["scope"] == ["example.com"]
    assert d["targets"]["down.example.com"] == {}
    ports = d["targets"]["example.com"]["ports"]
    assert ports["22"] == {"name": "ssh", "version": "SSH-2.0-OpenSSH_9.3"}
    assert ports["80"]["paths"]["/"] == {
        "status": 200,
        "contentType": "text/html",
        "title": "Example",
        "tech": ["nginx"],
        "xss": [{"param": "q", "payload": "<x>", "severity": "Medium"}],
    }


def test_from_dict_restores_back_references():
    hunt = Hunt.from_dict({
        "scope": ["example.com"],
        "targets": {"example.com": {"ports": {"80": {"name": "http", "crlfVulnerabilities": ["http://example.com:80/x"],
                                                    "paths": {"/": {"status": 200}}}}}},
    })
    target = hunt.targets["example.com"]
    port = target.ports[80]
    assert target.hunt is hunt
    assert port.target is target
    assert port.crlf_vulns == ["http://example.com:80/x"]
    assert port.paths["/"].port is port
    assert port.paths["/"].status == 200
    assert target.scanned


def test_reloaded_tls_ports_keep_https():
    hunt = Hunt.from_dict({"targets": {"example.com": {"ports": {"443": {"name": "https", "paths": {}},
                                                                 "80": {"name": "http", "paths": {}}}}}})
    ports = hunt.targets["example.com"].ports
    assert ports[443].url == "https://example.com:443"
    assert ports[80].url == "http://example.com:80"
