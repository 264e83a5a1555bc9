from __future__ import annotations

from conftest import build_palaces
from ziwei import ZiweiConfig, classify_star, classify_stars


def test_stars_are_split_by_category(palaces) -> None:
    info = classify_stars(palaces)

    assert info.main_stars['命宫'] == ['紫微', '天府']
    assert info.main_stars['父母宫'] == ['天相', '天梁', '七杀', '破军']
    assert info.lucky_stars['财帛宫'] == ['禄存']
    assert info.lucky_stars['官禄宫'] == ['天马']
    assert info.evil_stars['子女宫'] == ['擎羊']
    assert info.evil_stars['官禄宫'] == ['火星']


def test_palaces_without_a_category_are_absent(palaces) -> None:
    info = classify_stars(palaces)

    assert '夫妻宫' not in info.main_stars
    assert '命宫' not in info.evil_stars
    assert '交友宫' not in info.lucky_stars


def test_unclassified_stars_are_dropped(palaces) -> None:
    info = classify_stars(palaces)
    classified = [
        star
        for category in (info.main_stars, info.lucky_stars, info.evil_stars)
        for stars in category.values()
        for star in stars
    ]

    assert '红鸾' not in classified
    assert '天喜' not in classified


def test_no_star_is_counted_twice(palaces) -> None:
    info = classify_stars(palaces)
    classified = sum(
        len(stars)
        for category in (info.main_stars, info.lucky_stars, info.evil_stars)
        for stars in category.values()
    )
    known = sum(1 for p in palaces for star in p.stars if classify_star(star) is not None)

    assert classified == known == 23


def test_fourteen_main_stars() -> None:
    assert len(ZiweiConfig.MAIN_STARS) == 14
    assert not ZiweiConfig.MAIN_STARS & ZiweiConfig.LUCKY_STARS
    assert not ZiweiConfig.LUCKY_STARS & ZiweiConfig.EVIL_STARS


def test_key_star_locations(palaces) -> None:
    info = classify_stars(palaces)

    assert info.key_stars_location == {
        '紫微': '命宫',
        '天府': '命宫',
        '太阳': '子女宫',
        '太阴': '官禄宫',
        '禄存': '财帛宫',
        '天马': '官禄宫',
    }


def test_missing_key_star_is_omitted() -> None:
    info = classify_stars(build_palaces({'命宫': ('紫微',)}))

    assert info.key_stars_location == {'紫微': '命宫'}
    assert info.main_stars == {'命宫': ['紫微']}
    assert info.lucky_stars == {}
