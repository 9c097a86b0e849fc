""" Topic selectors. A selector is a compact expression over topic paths,
    used to scope subscriptions and notifications to part of the topic tree.
    The server evaluates selectors authoritatively; the local evaluation here
    is used to route pushed values to the streams registered for them.

    Supported forms::

        >cdn/a.json         the topic at exactly this path
        cdn/a.json          same as above; '>' is the default
        ?cdn/.*\\.json       split-path pattern, one regular expression
                            per path segment
        *cdn/.*             full-path regular expression
        #>a////?b//         selector set; any member may match

    A trailing '//' also selects every descendant of a match, and a trailing
    '/' selects the descendants but not the match itself.
"""

import re

set_separator = '////'

PATH = '>'
SPLIT_PATH = '?'
FULL_PATH = '*'
SET = '#'

prefixes = set((PATH, SPLIT_PATH, FULL_PATH, SET))


def descendants(path):
    """ Return a selector for the topic at *path* and all of its descendants.
        This is the form used to watch an entire branch of the topic tree.
        Each segment of *path* is matched literally.
    """

    segments = normalize(path).split('/')
    segments = [re.escape(segment) for segment in segments]
    return SPLIT_PATH + '/'.join(segments) + '//'



def normalize(path):
    """ Topic paths do not carry leading or trailing slashes.
    """

    return str(path).strip('/')



def parse(expression):
    """ Parse the *expression* into a :class:`Selector` or
        :class:`SelectorSet` instance. A ValueError is raised for empty or
        malformed expressions.
    """

    if isinstance(expression, (Selector, SelectorSet)):
        return expression

    expression = str(expression).strip()

    if expression == '':
        raise ValueError('empty selector')

    if expression[0] == SET:
        members = expression[1:].split(set_separator)
        members = [parse(member) for member in members if member != '']
        if len(members) == 0:
            raise ValueError('empty selector set: ' + repr(expression))
        return SelectorSet(expression, members)

    return Selector(expression)



class Selector:
    """ A single selector expression. The *kind* is one of the prefix
        characters; the *qualifier* is '', '/' (descendants only), or '//'
        (the match and its descendants).
    """

    def __init__(self, expression):

        self.expression = expression

        if expression[0] in prefixes:
            kind = expression[0]
            body = expression[1:]
        else:
            kind = PATH
            body = expression

        if body.endswith('//'):
            qualifier = '//'
            body = body[:-2]
        elif body.endswith('/'):
            qualifier = '/'
            body = body[:-1]
        else:
            qualifier = ''

        if kind != FULL_PATH:
            body = body.lstrip('/')

        if body == '':
            raise ValueError('selector has no path: ' + repr(expression))

        self.kind = kind
        self.qualifier = qualifier
        self.body = body

        if kind == SPLIT_PATH:
            try:
                self._segments = [re.compile(part) for part in body.split('/')]
            except re.error as e:
                raise ValueError("bad pattern in %r: %s" % (expression, str(e)))

        elif kind == FULL_PATH:
            try:
                self._regex = re.compile(body)
            except re.error as e:
                raise ValueError("bad pattern in %r: %s" % (expression, str(e)))


    def __repr__(self):
        return 'Selector(%r)' % (self.expression)


    def __str__(self):
        return self.expression


    def matches(self, path):
        """ Return True if the topic at *path* is selected.
        """

        path = normalize(path)

        if path == '':
            return False

        if self.qualifier == '':
            return self._matches(path)

        segments = path.split('/')

        if self.qualifier == '//':
            first = 1
        else:
            first = 0

        # Try each proper ancestor, and the path itself when the qualifier
        # includes the match.

        for count in range(1, len(segments) + first):
            ancestor = '/'.join(segments[:count])
            if self._matches(ancestor):
                return True

        return False


    def _matches(self, path):

        if self.kind == PATH:
            return path == self.body

        if self.kind == SPLIT_PATH:
            segments = path.split('/')
            if len(segments) != len(self._segments):
                return False

            for segment, pattern in zip(segments, self._segments):
                if pattern.fullmatch(segment) is None:
                    return False

            return True

        return self._regex.fullmatch(path) is not None


# end of class Selector



class SelectorSet:
    """ A set of selectors; a path is selected if any member selects it.
    """

    def __init__(self, expression, members):
        self.expression = expression
        self.members = members


    def __repr__(self):
        return 'SelectorSet(%r)' % (self.expression)


    def __str__(self):
        return self.expression


    def matches(self, path):

        for member in self.members:
            if member.matches(path):
                return True

        return False


# end of class SelectorSet


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
