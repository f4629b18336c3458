from realmrelay.consts import Features


def test_no_features_render_empty():
    assert str(Features()) == ""


def test_all_features_in_fixed_order():
    every = Features(
        mimalloc=True,
        jemalloc=True,
        multi_thread=True,
        hook=True,
        proxy=True,
        balance=True,
        transport=True,
        brutal_shutdown=True,
    )
    assert str(every) == "[hook][proxy][balance][brutal][transport][multi-thread][mimalloc][jemalloc]"


def test_partial_features_keep_order():
    assert str(Features(jemalloc=True, hook=True)) == "[hook][jemalloc]"
    assert str(Features(brutal_shutdown=True)) == "[brutal]"


def test_features_are_immutable():
    feats = Features()
    try:
        feats.hook = True  # type: ignore[misc]
    except AttributeError:
        pass
    assert feats.hook is False