from ubxlink.gnss import Gnss


def test_empty_supports_nothing():
    gnss = Gnss()
    assert not gnss.is_supported("GPS")
    assert len(gnss) == 0


def test_add_and_query():
    gnss = Gnss()
    gnss.add("GPS")
    gnss.add("GLONASS")
    assert gnss.is_supported("GPS")
    assert gnss.is_supported("GLONASS")
    assert not gnss.is_supported("Galileo")
    assert "GPS" in gnss


def test_add_is_idempotent():
    gnss = Gnss()
    gnss.add("QZSS")
    gnss.add("QZSS")
    assert len(gnss) == 1
    assert list(gnss) == ["QZSS"]


def test_names_are_case_sensitive():
    gnss = Gnss()
    gnss.add("GPS")
    assert not gnss.is_supported("gps")