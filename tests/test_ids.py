from ids import new_id


def test_new_id_is_hex_string():
    value = new_id()
    assert isinstance(value, str)
    assert len(value) == 32
    int(value, 16)


def test_new_ids_do_not_collide():
    assert len({new_id() for _ in range(1000)}) == 1000
