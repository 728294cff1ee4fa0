import re

import pytest

from epcheck import patterns
from epcheck.patterns import compile_patterns, endpoint_patterns, template_path_regex
from tests.conftest import ep


def matches(endpoint, text):
    return sum(len(entry.regex.findall(text)) for entry in compile_patterns([endpoint]))


def idiom_hits(endpoint, text):
    return {name for name, source in endpoint_patterns(endpoint).items() if re.search(source, text)}


def test_template_path_regex_replaces_placeholders():
    assert template_path_regex("/users/{id}") == "/users/[^/]+"
    assert template_path_regex("/orgs/{org}/users/{user_id}") == "/orgs/[^/]+/users/[^/]+"


def test_template_path_regex_escapes_literal_segments():
    regex = re.compile(template_path_regex("/files/{name}.json"))
    assert regex.fullmatch("/files/report.json")
    assert not regex.fullmatch("/files/reportXjson")


@pytest.mark.parametrize("quote", ["'", '"', "`"])
def test_uppercase_literal_call_all_quotes(quote):
    text = f"const r = await client.GET({quote}/api/users{quote});"
    assert "literal_upper" in idiom_hits(ep("GET", "/api/users"), text)


def test_literal_allows_base_path_prefix():
    text = 'client.GET("/v1/api/users")'
    assert "literal_upper" in idiom_hits(ep("GET", "/api/users"), text)


def test_templated_endpoint_matches_concrete_value():
    text = 'client.GET("/users/42")'
    hits = idiom_hits(ep("GET", "/users/{id}"), text)
    assert "template_upper" in hits


def test_templated_endpoint_matches_placeholder_literally():
    text = "client.GET('/api/users/{id}', { params: { path: { id } } })"
    hits = idiom_hits(ep("GET", "/api/users/{id}"), text)
    assert "loose_upper" in hits


def test_templated_param_does_not_span_segments():
    assert matches(ep("GET", "/users/{id}/posts"), 'GET("/users/1/2/posts")') == 0


def test_lowercase_variants():
    assert {"literal_lower", "template_lower", "loose_lower"} <= idiom_hits(
        ep("POST", "/orders"), "api.post('/orders')"
    )
    assert "template_lower" in idiom_hits(ep("DELETE", "/orders/{id}"), "http.delete(`/orders/7`)")


def test_loose_variant_tolerates_trailing_arguments():
    text = "api.put('/users/{id}', payload, { headers })"
    hits = idiom_hits(ep("PUT", "/users/{id}"), text)
    assert hits == {"loose_lower"}


def test_method_mismatch_does_not_match():
    assert matches(ep("GET", "/orders"), 'POST("/orders")') == 0
    assert matches(ep("GET", "/orders"), 'api.post("/orders", body)') == 0


def test_method_token_is_case_sensitive_per_idiom():
    # Mixed case is neither the uppercase nor the lowercase idiom
    assert matches(ep("GET", "/orders"), 'Get("/orders")') == 0


def test_regex_metacharacters_in_path_are_literal():
    endpoint = ep("GET", "/search.json")
    assert matches(endpoint, 'get("/search.json")') > 0
    assert matches(endpoint, 'get("/searchXjson")') == 0
    assert matches(ep("GET", "/a+b"), 'get("/aab")') == 0


def test_pattern_table_order_is_deterministic():
    endpoints = [ep("GET", "/a"), ep("POST", "/b")]
    first = [(e.endpoint, e.idiom, e.regex.pattern) for e in compile_patterns(endpoints)]
    second = [(e.endpoint, e.idiom, e.regex.pattern) for e in compile_patterns(endpoints)]
    assert first == second
    assert [e.endpoint for e in compile_patterns(endpoints)][:6] == [ep("GET", "/a")] * 6


def test_bad_pattern_skips_only_that_endpoint(monkeypatch, caplog):
    real = patterns.endpoint_patterns

    def broken(endpoint):
        family = real(endpoint)
        if endpoint.path == "/bad":
            return {name: "(" for name in family}
        return family

    monkeypatch.setattr(patterns, "endpoint_patterns", broken)
    with caplog.at_level("WARNING", logger="epcheck.patterns"):
        table = compile_patterns([ep("GET", "/bad"), ep("GET", "/good")])

    assert {e.endpoint for e in table} == {ep("GET", "/good")}
    assert len(table) == len(patterns.IDIOMS)
    assert "Skipping" in caplog.text
