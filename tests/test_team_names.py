from roster_enrich.workflows.team_names import expand_team_label, looks_abbreviated, strip_mascot


def test_short_labels_look_abbreviated():
    assert looks_abbreviated("LHW")
    assert looks_abbreviated("LHB12")
    assert not looks_abbreviated("LHWOLVES")
    assert not looks_abbreviated("L H")
    assert not looks_abbreviated("")


def test_strip_mascot_only_drops_known_words():
    assert strip_mascot("Legacy Hockey Wolves") == "Legacy Hockey"
    assert strip_mascot("Legacy Hockey Wolfpack") == "Legacy Hockey Wolfpack"
    assert strip_mascot("Wolves") == "Wolves"


def test_expand_team_label():
    assert expand_team_label("LHW", "Legacy Hockey Wolves") == "Legacy Hockey"
    assert expand_team_label("Legacy Hockey", "Legacy Hockey Wolves") == "Legacy Hockey"
    assert expand_team_label("LHW", None) == "LHW"
    assert expand_team_label(" LHW ", "North Stars") == "North Stars"


def test_expand_team_label_respects_custom_limits():
    assert expand_team_label("LHWOLF", "Legacy Hockey Wolves", max_length=6) == "Legacy Hockey"
    assert expand_team_label("LHW", "Legacy Hockey Wolves", mascots=()) == "Legacy Hockey Wolves"
