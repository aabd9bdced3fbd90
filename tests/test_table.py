from m2handler.protocol.table import Table


def test_keys_are_normalized():

    table = Table()
    table['Content-Type'] = 'text/plain'

    assert table['content-type'] == 'text/plain'
    assert table['CONTENT_TYPE'] == 'text/plain'
    assert 'content_type' in table
    assert list(table) == ['content_type']


def test_normalize_and_header_name():

    assert Table.normalize('X-Forwarded-For') == 'x_forwarded_for'
    assert Table.header_name('x_forwarded_for') == 'X-Forwarded-For'
    assert Table.header_name('METHOD') == 'Method'


def test_append_builds_lists():

    table = Table()
    table.append('Set-Cookie', 'a=1')
    assert table['set-cookie'] == 'a=1'

    table.append('set_cookie', 'b=2')
    assert table['Set-Cookie'] == ['a=1', 'b=2']

    table.append('SET-COOKIE', ['c=3', 'd=4'])
    assert table['set-cookie'] == ['a=1', 'b=2', 'c=3', 'd=4']


def test_set_replaces():

    table = Table({'Accept': 'text/html'})
    table.append('Accept', 'text/plain')
    table.set('accept', '*/*')

    assert table['Accept'] == '*/*'


def test_initial_values_are_combined():

    table = Table({'X-Thing': 'a', 'x_thing': 'b'})
    assert table['X-Thing'] == ['a', 'b']
    assert len(table) == 1


def test_mapping_behavior():

    table = Table({'Host': 'localhost', 'Accept': '*/*'})

    assert table.get('missing') is None
    assert table.get('missing', 'default') == 'default'
    assert table.values_at('host', 'missing', 'accept') == ['localhost', None, '*/*']

    del table['HOST']
    assert 'host' not in table
    assert len(table) == 1


def test_copy_is_independent():

    table = Table()
    table.append('Via', 'one')
    table.append('Via', 'two')

    duplicate = table.copy()
    duplicate.append('Via', 'three')

    assert table['via'] == ['one', 'two']
    assert duplicate['via'] == ['one', 'two', 'three']


def test_merge():

    table = Table({'Host': 'localhost', 'Accept': '*/*'})
    merged = table.merge({'accept': 'text/plain', 'X-Extra': 'yes'})

    assert merged['Accept'] == 'text/plain'
    assert merged['x-extra'] == 'yes'
    assert table['Accept'] == '*/*'
    assert 'x-extra' not in table


def test_str_renders_header_lines():

    table = Table()
    table['content-type'] = 'text/plain'
    table.append('Set-Cookie', 'a=1')
    table.append('Set-Cookie', 'b=2')
    table['Content-Length'] = 12

    expected = ('Content-Length: 12\r\n'
                'Content-Type: text/plain\r\n'
                'Set-Cookie: a=1\r\n'
                'Set-Cookie: b=2\r\n')

    assert str(table) == expected


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
