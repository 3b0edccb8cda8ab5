"""
DSL Test Suite

Tests for building tables and chains from nft-style one-liners.

Author: nftjson Project
License: GNU GPL v3
"""

import unittest

from nftjson.dsl import nft, parse_priority
from nftjson.schema import Chain, Table
from nftjson.types import NfChainPolicy, NfChainType, NfFamily, NfHook


class TestPriority(unittest.TestCase):
    """Test chain priority parsing."""

    def test_numbers(self):
        self.assertEqual(parse_priority('0'), 0)
        self.assertEqual(parse_priority('-150'), -150)

    def test_names(self):
        self.assertEqual(parse_priority('filter'), 0)
        self.assertEqual(parse_priority('raw'), -300)
        self.assertEqual(parse_priority('srcnat'), 100)

    def test_names_with_offset(self):
        self.assertEqual(parse_priority('filter + 10'), 10)
        self.assertEqual(parse_priority('mangle - 5'), -155)
        self.assertEqual(parse_priority('dstnat+1'), -99)

    def test_bridge_names(self):
        self.assertEqual(parse_priority('filter', NfFamily.BRIDGE), -200)
        self.assertEqual(parse_priority('out', NfFamily.BRIDGE), 100)

    def test_invalid(self):
        with self.assertRaises(ValueError):
            parse_priority('bogus')
        with self.assertRaises(ValueError):
            parse_priority('filter * 2')


class TestDeclarations(unittest.TestCase):
    """Test table and chain declarations."""

    def test_table(self):
        self.assertEqual(nft('table inet filter'), Table(family=NfFamily.INET, name='filter'))

    def test_regular_chain(self):
        self.assertEqual(
            nft('chain inet filter forward'),
            Chain(family=NfFamily.INET, table='filter', name='forward')
        )

    def test_base_chain(self):
        chain = nft('chain inet filter input { type filter hook input priority 0; policy drop; }')

        self.assertEqual(chain, Chain(
            family=NfFamily.INET, table='filter', name='input',
            type=NfChainType.FILTER, hook=NfHook.INPUT, prio=0, policy=NfChainPolicy.DROP
        ))

    def test_named_priority(self):
        chain = nft('chain ip nat post { type nat hook postrouting priority srcnat; }')

        self.assertEqual(chain.type, NfChainType.NAT)
        self.assertEqual(chain.prio, 100)
        self.assertIsNone(chain.policy)

    def test_netdev_device(self):
        chain = nft('chain netdev filter ingress '
                    '{ type filter hook ingress device eth0 priority -500; }')

        self.assertEqual(chain.dev, 'eth0')
        self.assertEqual(chain.hook, NfHook.INGRESS)
        self.assertEqual(chain.prio, -500)

    def test_multiline_body(self):
        chain = nft("""
            chain inet filter output {
                type filter hook output priority filter + 10;
                policy accept;
            }
        """)

        self.assertEqual(chain.prio, 10)
        self.assertEqual(chain.policy, NfChainPolicy.ACCEPT)

    def test_unknown_family(self):
        with self.assertRaises(ValueError) as ctx:
            nft('table ipx filter')

        self.assertIn("unknown family 'ipx'", str(ctx.exception))

    def test_unknown_hook(self):
        with self.assertRaises(ValueError):
            nft('chain inet filter c { type filter hook sideways priority 0; }')

    def test_unsupported_clause(self):
        with self.assertRaises(ValueError):
            nft('chain inet filter c { counter; }')

    def test_package_exports(self):
        import nftjson

        self.assertIs(nftjson.nft, nft)
        self.assertIs(nftjson.parse_priority, parse_priority)
        self.assertIn('nft', nftjson.__all__)

    def test_unsupported_declaration(self):
        with self.assertRaises(ValueError):
            nft('set inet filter s')


if __name__ == '__main__':
    unittest.main()
