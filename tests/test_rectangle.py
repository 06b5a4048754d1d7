from camstages.rectangle import Point, Rectangle, Size


def test_top_left_and_size():
    r = Rectangle(10, 20, 30, 40)
    assert r.top_left() == Point(r.x, r.y)
    assert r.size() == Size(r.width, r.height)


def test_center():
    assert Rectangle(10, 20, 30, 40).center() == Point(25, 40)


def test_scaled_by_double():
    r = Rectangle(10, 20, 30, 40)
    assert r.scaled_by(Size(2, 2), Size(1, 1)) == Rectangle(20, 40, 60, 80)


def test_scaled_by_identity():
    r = Rectangle(-7, 13, 31, 17)
    assert r.scaled_by(Size(5, 9), Size(5, 9)) == r


def test_scaled_by_truncates_toward_zero():
    pos = Rectangle(3, 3, 1, 1).scaled_by(Size(1, 1), Size(2, 2))
    neg = Rectangle(-3, -3, 1, 1).scaled_by(Size(1, 1), Size(2, 2))
    assert neg.x == -pos.x
    assert neg.y == -pos.y


def test_bounded_to_self_and_disjoint():
    r = Rectangle(5, 5, 10, 10)
    assert r.bounded_to(r) == r
    disjoint = r.bounded_to(Rectangle(100, 100, 5, 5))
    assert disjoint.width == 0
    assert disjoint.height == 0


def test_bounded_to_is_inside_both():
    a = Rectangle(0, 0, 20, 20)
    b = Rectangle(10, 5, 30, 30)
    c = a.bounded_to(b)
    assert c.bounded_to(a) == c
    assert c.bounded_to(b) == c


def test_translate_round_trip():
    r = Rectangle(1, 2, 3, 4)
    p = Point(7, -9)
    assert r.translated_by(p).translated_by(-p) == r


def test_enclosed_in_moves_inside():
    assert Rectangle(-5, -5, 10, 10).enclosed_in(Rectangle(0, 0, 100, 100)) == Rectangle(0, 0, 10, 10)


def test_enclosed_in_shrinks_oversized():
    boundary = Rectangle(0, 0, 50, 40)
    r = Rectangle(10, 10, 200, 200).enclosed_in(boundary)
    assert r == boundary


def test_bounded_to_aspect_ratio_square():
    s = Size(4056, 3040).bounded_to_aspect_ratio(Size(1, 1))
    assert s.width == s.height == 3040


def test_bounded_to_aspect_ratio_same_ratio_unchanged():
    s = Size(640, 480)
    assert s.bounded_to_aspect_ratio(Size(4, 3)) == s


def test_centered_to_keeps_center():
    p = Point(100, 60)
    r = Size(40, 20).centered_to(p)
    assert r.center() == p
    assert r.size() == Size(40, 20)