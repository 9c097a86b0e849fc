import pytest

from topicmirror import selector


def test_descendants():

    assert selector.descendants('cdn') == '?cdn//'
    assert selector.descendants('/cdn/') == '?cdn//'

    branch = selector.parse(selector.descendants('cdn'))
    assert branch.matches('cdn')
    assert branch.matches('cdn/a.json')
    assert branch.matches('cdn/nested/a.json')
    assert not branch.matches('cdnx/a.json')
    assert not branch.matches('other/cdn')

    versioned = selector.parse(selector.descendants('cdn.v1/feeds'))
    assert selector.descendants('cdn.v1/feeds') == '?cdn\\.v1/feeds//'
    assert versioned.matches('cdn.v1/feeds/a.json')
    assert not versioned.matches('cdnXv1/feeds/a.json')


def test_path():

    exact = selector.parse('>cdn/trader-news.json')
    assert exact.matches('cdn/trader-news.json')
    assert exact.matches('/cdn/trader-news.json')
    assert not exact.matches('cdn')
    assert not exact.matches('cdn/trader-news.json/child')

    implicit = selector.parse('cdn/trader-news.json')
    assert implicit.kind == selector.PATH
    assert implicit.matches('cdn/trader-news.json')


def test_qualifiers():

    children = selector.parse('>cdn/')
    assert not children.matches('cdn')
    assert children.matches('cdn/a.json')
    assert children.matches('cdn/a/b')

    branch = selector.parse('>cdn//')
    assert branch.matches('cdn')
    assert branch.matches('cdn/a/b')


def test_split_path():

    pattern = selector.parse('?cdn/.*\\.json')
    assert pattern.matches('cdn/a.json')
    assert not pattern.matches('cdn/a.txt')
    assert not pattern.matches('cdn/nested/a.json')
    assert not pattern.matches('cdn')


def test_full_path():

    pattern = selector.parse('*cdn/.*\\.json')
    assert pattern.matches('cdn/a.json')
    assert pattern.matches('cdn/nested/a.json')
    assert not pattern.matches('other/a.json')


def test_set():

    both = selector.parse('#>cdn/a.json////?other//')
    assert both.matches('cdn/a.json')
    assert both.matches('other/x')
    assert not both.matches('cdn/b.json')
    assert str(both) == '#>cdn/a.json////?other//'


def test_invalid():

    for expression in ('', '   ', '>', '?//', '#', '?cdn/(', '*['):
        with pytest.raises(ValueError):
            selector.parse(expression)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
