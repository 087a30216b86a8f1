from stevied.version import VERSION, version_string


def test_version_string():
    assert version_string() == "STEVIE - Version 3.7A"


def test_version_string_matches_constant():
    assert version_string() == VERSION
    assert version_string().endswith("3.7A")