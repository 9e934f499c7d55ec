#!/usr/bin/env python3
"""
Test script for homoshare.

Runs tests on all components to verify correct implementation.
Small key sizes keep the pure-Python prime search fast.
"""

import io
import math
import sys
import os
import random
from functools import lru_cache

import numpy as np

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

TEST_PRIME_BITS = 192


@lru_cache(maxsize=None)
def _keypair(fast: bool = True, seed: int = 1234):
    from crypto.paillier import force_generate_keypair
    return force_generate_keypair(TEST_PRIME_BITS, fast, rng=random.Random(seed))


def test_number_theory():
    """Test number-theory helpers."""
    print("Testing number theory helpers...")

    from crypto.number_theory import (
        PaillierArithmeticError, is_probable_prime, generate_prime,
        lcm, L, mod_inverse, generate_g_fast, generate_r, FAST_GENERATORS
    )

    rng = random.Random(7)

    assert lcm(4, 6) == 12
    assert lcm(0, 5) == 0
    assert L(1 + 3 * 11, 11) == 3
    assert mod_inverse(3, 11) == 4

    try:
        mod_inverse(6, 9)
    except PaillierArithmeticError:
        pass
    else:
        raise AssertionError("Non-invertible value should raise")

    for p in (2, 3, 5, 97, 7919, 2 ** 61 - 1):
        assert is_probable_prime(p, rng=rng), f"{p} is prime"
    for c in (0, 1, 4, 561, 7917, 2 ** 61 + 1):
        assert not is_probable_prime(c, rng=rng), f"{c} is composite"

    p = generate_prime(64, rng)
    assert p.bit_length() == 64 and is_probable_prime(p, rng=rng)

    assert generate_g_fast(15) == 2
    assert generate_g_fast(2 * 3 * 5 * 7 * 13) == 11

    # No small prime is coprime, so g is sampled the general way
    g = generate_g_fast(2 * 3 * 5 * 7 * 11, random.Random(3))
    assert g not in FAST_GENERATORS

    n = 3 * 5 * 7
    for _ in range(50):
        r = generate_r(n, rng)
        assert 1 <= r < n and math.gcd(r, n) == 1

    print("  Number theory tests passed!")


def test_crypto_paillier():
    """Test Paillier encode/decode on both decode paths."""
    print("Testing Paillier encryption...")

    from crypto.paillier import (
        PaillierDecoder, PaillierEncoder, PaillierCipher,
        encode, decode, add
    )

    rng = random.Random(99)
    for fast in (True, False):
        keys = _keypair(fast)
        pk = keys.public
        n = pk.n
        assert n == keys.extended_private.p * keys.extended_private.q
        assert keys.private.n == keys.extended_private.n == n

        standard = PaillierDecoder(keys.private)
        crt = PaillierDecoder(keys.extended_private)
        assert not standard.uses_crt and crt.uses_crt

        plaintexts = [0, 1, 2, n - 1, n // 2] + [rng.randrange(n) for _ in range(20)]
        for m in plaintexts:
            c = encode(pk, m, rng)
            assert decode(keys.private, c) == m, f"Standard decode failed for {m}"
            assert standard.decode(c) == m
            assert crt.decode(c) == m, f"CRT decode failed for {m}"

        # Precomputed contexts
        encoder = PaillierEncoder(pk, rng)
        cipher = PaillierCipher(keys, rng)
        for m in plaintexts[:10]:
            assert crt.decode(encoder.encode(m)) == m
            assert cipher.decode(cipher.encode(m)) == m

        # Homomorphic addition
        m1, m2 = n - 5, 42
        c_sum = add(encode(pk, m1, rng), encode(pk, m2, rng), n)
        assert crt.decode(c_sum) == (m1 + m2) % n, "Homomorphic addition failed"
        assert standard.decode(encoder.add(encoder.encode(m1), encoder.encode(m2))) == (m1 + m2) % n

    print("  Paillier tests passed!")


def test_forced_generation_is_bounded():
    """Test that forced generation gives up after its attempt cap."""
    print("Testing bounded forced key generation...")

    import crypto.paillier as paillier_module
    from crypto.number_theory import PaillierArithmeticError

    calls = []

    def always_fail(bits, fast, rng):
        calls.append(bits)
        raise PaillierArithmeticError("no inverse")

    original = paillier_module.generate_keypair
    paillier_module.generate_keypair = always_fail
    try:
        paillier_module.force_generate_keypair(64, True, max_attempts=5)
    except paillier_module.KeyGenerationError as e:
        assert e.attempts == 5
        assert isinstance(e.__cause__, PaillierArithmeticError)
    else:
        raise AssertionError("Exhausted generation should raise")
    finally:
        paillier_module.generate_keypair = original

    assert len(calls) == 5, "Every attempt should have been made"
    print("  Forced generation tests passed!")


def test_crypto_splitters():
    """Test all splitters: combine(split(v)) == v mod n."""
    print("Testing secret splitters...")

    from crypto.paillier import PaillierDecoder, encode
    from crypto.splitters import get_splitter

    keys = _keypair()
    n = keys.public.n
    rng = random.Random(5)
    values = [0, 1, n - 1, 2 ** 256 - 1] + [rng.randrange(n) for _ in range(5)]

    for name in ('additive', 'multiplicative', 'paillier'):
        splitter = get_splitter(name, n, TEST_PRIME_BITS, rng)
        for share_count in range(2, 17):
            for value in values:
                shares = splitter.split(value, share_count)
                assert len(shares) == share_count
                if name == 'paillier':
                    assert splitter.combine_plain(shares) == value % n
                else:
                    assert splitter.combine(shares) == value % n, f"{name} failed for {share_count} shares"

        try:
            splitter.split(5, 1)
        except ValueError:
            pass
        else:
            raise AssertionError("A single share should be rejected")

    # Homomorphic combination of individually encoded additive shares
    decoder = PaillierDecoder(keys.extended_private)
    splitter = get_splitter('paillier', n, TEST_PRIME_BITS, rng)
    for share_count in (2, 5, 16):
        value = rng.randrange(2 ** 256)
        shares = splitter.split(value, share_count)
        ciphertexts = [encode(keys.public, s, rng) for s in shares]
        assert decoder.decode(splitter.combine(ciphertexts)) == sum(shares) % n == value

    print("  Splitter tests passed!")


def test_partitioner():
    """Test channel partitioning."""
    print("Testing channel partitioner...")

    from crypto.partitioner import split_uniform

    rng = np.random.default_rng(2024)
    for length in (0, 1, 5, 17, 1000, 4096):
        data = bytes(rng.integers(0, 256, size=length, dtype=np.uint8))
        for partitions in range(1, 21):
            chunks = split_uniform(data, partitions, rng)
            assert len(chunks) == partitions, "Wrong number of chunks"
            assert b''.join(chunks) == data, "Chunks do not reconstruct the input"

    # The first chunk stays within a third of the mean
    chunks = split_uniform(bytes(9000), 9, rng)
    assert 667 <= len(chunks[0]) <= 1333

    try:
        split_uniform(b'abc', 0)
    except ValueError:
        pass
    else:
        raise AssertionError("Zero partitions should be rejected")

    print("  Partitioner tests passed!")


def test_fixed_width_codec():
    """Test the fixed-width signed integer codec."""
    print("Testing fixed-width integer codec...")

    from payload.wire import FieldOverflowError, pack_int, unpack_int

    for width in (1, 4, 17, 32):
        top = 2 ** (8 * width - 1)
        for v in (0, 1, -1, top - 1, -top, top // 2, -(top // 2) - 1, 0x7F, -0x80):
            if -top <= v < top:
                encoded = pack_int(v, width)
                assert len(encoded) == width
                assert unpack_int(encoded) == v, f"Round trip failed for {v} in {width} bytes"

        for v in (top, -top - 1):
            try:
                pack_int(v, width)
            except FieldOverflowError:
                pass
            else:
                raise AssertionError(f"{v} should not fit {width} bytes")

    # Negative values carry the sign in the first byte's top bit
    assert pack_int(-1, 4) == b'\xff\xff\xff\xff'
    assert pack_int(0x80, 2) == b'\x00\x80'

    print("  Codec tests passed!")


def test_symmetric_primitives():
    """Test the AES and SHA-256 wrappers."""
    print("Testing symmetric primitives...")

    from crypto.primitives import (
        generate_key, key_to_int, key_from_int, encrypt, decrypt, sha256, key_digest
    )

    rng = random.Random(3)
    key = generate_key(256, rng)
    assert len(key) == 32

    for message in (b'', b'x', bytes(16), bytes(range(256)) * 3):
        ciphertext = encrypt(key, message)
        assert len(ciphertext) % 16 == 0 and len(ciphertext) > len(message)
        assert decrypt(key, ciphertext) == message

    assert len(encrypt(key, (5).to_bytes(4, 'big'))) == 16

    small = b'\x00\x00' + key[2:]
    assert key_from_int(key_to_int(small)) == small
    assert key_digest(key_to_int(key)) == sha256(key)
    assert len(sha256(b'abc')) == 32

    try:
        decrypt(key, encrypt(key, b'hello')[:-1])
    except ValueError:
        pass
    else:
        raise AssertionError("Corrupt ciphertext should raise")

    try:
        encrypt(b'short', b'hello')
    except ValueError:
        pass
    else:
        raise AssertionError("Invalid key size should raise")

    # A runtime without AES or SHA-256 is reported as unsupported
    import crypto.primitives as primitives_module
    from types import SimpleNamespace
    from cryptography.exceptions import UnsupportedAlgorithm
    from crypto.primitives import CryptoSupportError

    def unsupported(*args, **kwargs):
        raise UnsupportedAlgorithm("not available")

    original_cipher = primitives_module.Cipher
    primitives_module.Cipher = unsupported
    try:
        encrypt(key, b'hello')
    except CryptoSupportError as e:
        assert e.algorithm == 'AES'
        assert isinstance(e.__cause__, UnsupportedAlgorithm)
    else:
        raise AssertionError("Missing AES should raise CryptoSupportError")
    finally:
        primitives_module.Cipher = original_cipher

    original_hashes = primitives_module.hashes
    primitives_module.hashes = SimpleNamespace(Hash=unsupported, SHA256=original_hashes.SHA256)
    try:
        sha256(b'abc')
    except CryptoSupportError as e:
        assert e.algorithm == 'SHA-256'
    else:
        raise AssertionError("Missing SHA-256 should raise CryptoSupportError")
    finally:
        primitives_module.hashes = original_hashes

    assert decrypt(key, encrypt(key, b'restored')) == b'restored'

    print("  Symmetric primitive tests passed!")


def test_end_to_end():
    """Pack 1024 bytes into 8 packets and reassemble them in random order."""
    print("Testing end-to-end packing and reassembly...")

    from crypto.paillier import force_generate_keypair
    from payload import Packer, PacketCombiner, ReassemblyState, parse_packet

    rng = random.Random(42)
    keys = force_generate_keypair(TEST_PRIME_BITS, True, rng=rng)
    payload = rng.getrandbits(1024 * 8).to_bytes(1024, 'big')

    packets = Packer(keys.public, rng=rng).pack(8, 7, payload)
    assert len(packets) == 8

    for private_key in (keys.private, keys.extended_private):
        order = list(packets)
        rng.shuffle(order)

        combiner = PacketCombiner(private_key, 7)
        assert combiner.state == ReassemblyState.EMPTY

        results = [combiner.read(parse_packet(private_key, raw)) for raw in order]
        assert results == [False] * 7 + [True], f"Unexpected completion pattern: {results}"
        assert combiner.state == ReassemblyState.COMPLETE

        assert combiner.finish() == payload, "Reassembled payload differs"
        assert combiner.state == ReassemblyState.FINISHED

    print("  End-to-end tests passed!")


def test_rejected_packets():
    """Test sequence, digest and duplicate rejection without state change."""
    print("Testing packet rejection...")

    from payload import (
        Packer, PacketCombiner, IllegalPacketError, ReassemblyState,
        ReassemblyStateError, parse_packet
    )

    keys = _keypair()
    rng = random.Random(11)
    packer = Packer(keys.public, rng=rng)
    key = keys.extended_private

    # Sequence number mismatch
    combiner = PacketCombiner(key, 1)
    stranger = parse_packet(key, packer.pack(2, 2, b'hello')[0])
    try:
        combiner.read(stranger)
    except IllegalPacketError:
        pass
    else:
        raise AssertionError("Sequence mismatch should raise")
    assert combiner.packet_count == 0 and combiner.state == ReassemblyState.EMPTY

    # Finishing before completion
    try:
        combiner.finish()
    except ReassemblyStateError:
        pass
    else:
        raise AssertionError("finish() before completion should raise")

    # Digest mismatch and duplicates
    first = [parse_packet(key, p) for p in packer.pack(3, 1, b'first message')]
    other = [parse_packet(key, p) for p in packer.pack(3, 1, b'other message')]

    assert combiner.read(first[0]) is False
    for bad in (other[0], first[0]):
        try:
            combiner.read(bad)
        except IllegalPacketError:
            pass
        else:
            raise AssertionError("Foreign digest or duplicate share should raise")
        assert combiner.packet_count == 1

    assert combiner.read(first[1]) is False
    assert combiner.read(first[2]) is True
    assert combiner.finish() == b'first message'

    try:
        combiner.read(first[0])
    except ReassemblyStateError:
        pass
    else:
        raise AssertionError("read() after finish should raise")

    print("  Rejection tests passed!")


def test_truncated_stream():
    """Test that truncation is reported per field."""
    print("Testing truncated packet streams...")

    from payload import (
        Packer, PacketLayout, PacketTruncatedError, IllegalPacketError,
        read_packet, pack_int
    )

    keys = _keypair()
    key = keys.private
    raw = Packer(keys.public, rng=random.Random(8)).pack(2, 0, b'some data' * 10)[0]
    layout = PacketLayout.for_modulus(key.n)
    header = layout.header_size

    cases = [
        (0, 'packet size'),
        (2, 'packet size'),
        (6, 'packet sequence number'),
        (8 + layout.share_size - 1, 'homomorphically encrypted key'),
        (8 + layout.share_size + 31, 'key hash'),
        (header - 1, 'encrypted channel id'),
        (len(raw) - 1, 'encrypted data block'),
    ]
    for cut, field in cases:
        try:
            read_packet(key, io.BytesIO(raw[:cut]))
        except PacketTruncatedError as e:
            assert e.field == field, f"Cut at {cut}: expected {field}, got {e.field}"
            assert e.received < e.expected
        else:
            raise AssertionError(f"Cut at {cut} should raise")

    # A declared length shorter than the header is malformed, not truncated
    bogus = pack_int(header - 1, 4) + raw[4:]
    try:
        read_packet(key, io.BytesIO(bogus))
    except IllegalPacketError:
        pass
    else:
        raise AssertionError("Undersized declared length should raise")

    print("  Truncation tests passed!")


def test_stream_and_router():
    """Test interleaved sequences through a stream and the router."""
    print("Testing packet stream and sequence router...")

    from payload import Packer, SequenceRouter, iter_packets, PacketTruncatedError

    keys = _keypair()
    rng = random.Random(21)
    packer = Packer(keys.public, rng=rng)

    messages = {seq: bytes([seq]) * (100 + seq * 37) for seq in range(4)}
    packets = []
    for seq, message in messages.items():
        packets.extend(packer.pack(3 + seq, seq, message))
    rng.shuffle(packets)
    stream = b''.join(packets)

    router = SequenceRouter(keys.extended_private)
    received = {}
    for packet in iter_packets(keys.extended_private, io.BytesIO(stream)):
        message = router.read(packet)
        if message is not None:
            received[packet.sequence_number] = message

    assert received == messages
    assert router.pending() == {}

    # Stalled sequences are kept until discarded
    for packet in iter_packets(keys.extended_private, io.BytesIO(packets[0])):
        assert router.read(packet) is None
    assert len(router.pending()) == 1
    assert router.discard(next(iter(router.pending())))
    assert router.pending() == {}

    # A stream ending mid-packet is truncation
    try:
        list(iter_packets(keys.extended_private, io.BytesIO(stream[:-3])))
    except PacketTruncatedError as e:
        assert e.field == 'encrypted data block'
    else:
        raise AssertionError("Partial trailing packet should raise")

    # So is a stream ending inside the next length field
    try:
        list(iter_packets(keys.extended_private, io.BytesIO(packets[0] + packets[1][:2])))
    except PacketTruncatedError as e:
        assert e.field == 'packet size'
        assert (e.expected, e.received) == (4, 2)
    else:
        raise AssertionError("Partial length field should raise")

    print("  Stream and router tests passed!")


def test_packer_validation():
    """Test packer argument checks."""
    print("Testing packer validation...")

    from crypto.paillier import PaillierPublicKey
    from payload import Packer, FieldOverflowError, PacketSizeError

    keys = _keypair()
    packer = Packer(keys.public, rng=random.Random(4))

    for partitions in (0, 1):
        try:
            packer.pack(partitions, 0, b'data')
        except ValueError:
            pass
        else:
            raise AssertionError("Fewer than 2 partitions should be rejected")

    try:
        packer.pack(2, 2 ** 32, b'data')
    except FieldOverflowError:
        pass
    else:
        raise AssertionError("Oversized sequence number should be rejected")

    tiny = PaillierPublicKey(bitspace=64, n=(2 ** 64 - 59) * (2 ** 64 - 83), g=2)
    try:
        Packer(tiny)
    except ValueError:
        pass
    else:
        raise AssertionError("A modulus smaller than the AES key should be rejected")

    # Packets longer than the 4-byte length field allows
    import payload.packer as packer_module
    original_max = packer_module.MAX_UINT32
    packer_module.MAX_UINT32 = packer.layout.header_size
    try:
        packer.pack(2, 0, b'data')
    except PacketSizeError:
        pass
    else:
        raise AssertionError("An oversized packet should be rejected")
    finally:
        packer_module.MAX_UINT32 = original_max

    print("  Packer validation tests passed!")


def test_config_and_utils():
    """Test configuration and utilities."""
    print("Testing configuration and utilities...")

    from config import get_config
    from utils import make_rng, MetricsTracker, format_time

    config = get_config(prime_bits=256, partitions=4, seed=1)
    assert config.crypto.prime_bits == 256
    assert config.transport.partitions == 4

    try:
        get_config(partitions=1)
    except ValueError:
        pass
    else:
        raise AssertionError("One partition should be rejected")

    assert make_rng(5).random() == make_rng(5).random()
    assert isinstance(make_rng(None), random.SystemRandom)

    tracker = MetricsTracker()
    for v in (0.5, 1.5, 1.0):
        tracker.add_scalar('pack', v)
    assert tracker.get_latest('pack') == 1.0
    assert tracker.summary()['pack']['mean'] == 1.0

    assert format_time(0.0123).endswith('ms')
    assert 'm' in format_time(125)

    print("  Configuration and utility tests passed!")


def run_all_tests():
    """Run all tests."""
    print("=" * 60)
    print("Running homoshare Tests")
    print("=" * 60)

    tests = [
        ("Number Theory", test_number_theory),
        ("Paillier Encryption", test_crypto_paillier),
        ("Bounded Key Generation", test_forced_generation_is_bounded),
        ("Secret Splitters", test_crypto_splitters),
        ("Channel Partitioner", test_partitioner),
        ("Fixed-Width Codec", test_fixed_width_codec),
        ("Symmetric Primitives", test_symmetric_primitives),
        ("End-to-End", test_end_to_end),
        ("Packet Rejection", test_rejected_packets),
        ("Truncated Streams", test_truncated_stream),
        ("Stream and Router", test_stream_and_router),
        ("Packer Validation", test_packer_validation),
        ("Configuration and Utilities", test_config_and_utils),
    ]

    results = []
    for name, test_fn in tests:
        try:
            test_fn()
            results.append((name, True))
        except Exception as e:
            print(f"  ERROR: {e}")
            results.append((name, False))

    print("\n" + "=" * 60)
    print("Test Summary")
    print("=" * 60)

    passed = sum(1 for _, s in results if s)
    total = len(results)

    for name, success in results:
        status = "PASS" if success else "FAIL"
        print(f"  {name}: {status}")

    print(f"\nTotal: {passed}/{total} tests passed")

    return passed == total


if __name__ == '__main__':
    success = run_all_tests()
    sys.exit(0 if success else 1)
