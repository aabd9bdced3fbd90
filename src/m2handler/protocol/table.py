""" A case-insensitive table of header values, with support for more than
    one value per key.
"""

import collections.abc


class Table(collections.abc.MutableMapping):
    """ A mapping whose keys are compared case-insensitively, with hyphens
        and underscores treated as equivalent; 'Content-Type',
        'content_type', and 'CONTENT-TYPE' all refer to the same entry.

        Values are stored as given; :func:`append` turns an existing value
        into a list when a second value arrives for the same key. The
        optional *initial* mapping is loaded with :func:`append`, so keys
        that normalize to the same name are combined rather than replaced.
    """

    def __init__(self, initial=None):

        self._data = dict()

        if initial is None:
            return

        for key, value in initial.items():
            self.append(key, value)


    @staticmethod
    def normalize(key):
        """ Return the normalized form of *key* used for storage and lookup.
        """

        return str(key).lower().replace('-', '_')


    @staticmethod
    def header_name(key):
        """ Return *key* as an RFC822-style header label, 'Content-Type'.
        """

        parts = Table.normalize(key).split('_')
        return '-'.join(part.capitalize() for part in parts)


    def __getitem__(self, key):
        return self._data[self.normalize(key)]


    def __setitem__(self, key, value):
        self._data[self.normalize(key)] = value


    def __delitem__(self, key):
        del self._data[self.normalize(key)]


    def __contains__(self, key):
        return self.normalize(key) in self._data


    def __iter__(self):
        return iter(self._data)


    def __len__(self):
        return len(self._data)


    def __repr__(self):
        return '%s(%r)' % (self.__class__.__name__, self._data)


    def __str__(self):
        """ Return the table as RFC822 header lines, sorted, each terminated
            with a network end-of-line.
        """

        lines = ['%s: %s' % (name, value) for name, value in self.header_lines()]
        lines.sort()
        return '\r\n'.join(lines) + '\r\n'


    def set(self, key, value):
        """ Replace any existing value(s) for *key* with *value*.
        """

        self[key] = value


    def append(self, key, value):
        """ Add *value* for *key*. If there is already a value for *key* the
            entry becomes a list containing both; lists on either side are
            flattened into the result.
        """

        key = self.normalize(key)

        try:
            existing = self._data[key]
        except KeyError:
            self._data[key] = value
            return

        if isinstance(existing, list):
            combined = list(existing)
        else:
            combined = [existing]

        if isinstance(value, list):
            combined.extend(value)
        else:
            combined.append(value)

        self._data[key] = combined


    def copy(self):
        """ Return an independent copy of this table.
        """

        duplicate = self.__class__()

        for key, value in self._data.items():
            if isinstance(value, list):
                value = list(value)
            duplicate._data[key] = value

        return duplicate


    def merge(self, other):
        """ Return a new table containing this table's contents updated with
            the contents of *other*.
        """

        merged = self.copy()
        merged.update(other)
        return merged


    def values_at(self, *keys):
        """ Return a list of the values for *keys*, None for missing keys.
        """

        return [self.get(key) for key in keys]


    def header_lines(self):
        """ Yield (header name, value) pairs, one pair per value.
        """

        for key, value in self._data.items():
            if isinstance(value, list):
                values = value
            else:
                values = (value,)

            name = self.header_name(key)
            for single in values:
                yield name, str(single)


    def to_dict(self):
        return dict(self._data)


# end of class Table


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
