"""Example usage of the nrbf_records library."""

import struct

from nrbf_records import decode, dumps, run_query


def string(value):
    data = value.encode("latin-1")
    return bytes([len(data)]) + data


# A captured stream: header, one library, a Player class with two instances
# that point at each other, and the end record
stream = b"".join([
    b"\x00" + struct.pack("<iiii", 1, -1, 1, 0),
    b"\x0c" + struct.pack("<i", 2) + string("Assembly-CSharp"),
    # ClassWithMembersAndTypes: ObjectId 1, three members
    b"\x05" + struct.pack("<i", 1) + string("Game.Player") + struct.pack("<i", 3),
    string("name") + string("score") + string("rival"),
    bytes([1, 0, 4]),                              # String, Primitive, Class
    bytes([9]) + string("Game.Player") + struct.pack("<i", 2),  # Int64; class type info
    struct.pack("<i", 2),                          # LibraryId
    string("Alice") + struct.pack("<q", 2**62) + b"\x09" + struct.pack("<i", 3),
    # ClassWithId: ObjectId 3 reuses the schema of ObjectId 1
    b"\x01" + struct.pack("<ii", 3, 1),
    string("Bob") + struct.pack("<q", 17) + b"\x09" + struct.pack("<i", 1),
    b"\x0b",
])

result = decode(stream)

print(f"Decoded {len(result.records)} records")
for index, record in enumerate(result.records):
    print(f"  [{index}] {record.kind}")

print("\nReferences:")
for edge in result.references:
    print(f"  record {edge.source_index} member {edge.member_index} -> record {edge.target_index}")

# 64-bit values are rendered as strings so JSON readers keep every digit
print("\nJSON:")
print(dumps(result))

print("\nPlayers whose name starts with A:")
query_result = run_query(result, 'from * where Name = "Game.Player" and Members.name starts with "A"')
for row in query_result.rows:
    print(f"  [{row['_index']}] {row['Members']['name']}")
