import struct


# Magic and version
MAGIC_NUMBER = 0x636E746B5F62696E  # "cntk_bin" as a big-endian u64
FORMAT_VERSION = 1

# Data type tags (footer stream header)
DTYPE_FLOAT32 = 0
DTYPE_FLOAT64 = 1

# Sparse flag byte
STREAM_DENSE = 0
STREAM_SPARSE = 1

U32_MAX = 0xFFFFFFFF


# Fixed layouts (little endian)
PREFIX_STRUCT = struct.Struct("<QI")          # magic u64, version u32
FOOTER_HDR_STRUCT = struct.Struct("<QII")     # magic u64, chunk_count u32, stream_count u32
STREAM_HDR_STRUCT = struct.Struct("<BI")      # sparse u8, name_len u32 (name bytes follow)
STREAM_TAIL_STRUCT = struct.Struct("<BI")     # dtype u8, dimension u32
CHUNK_ENTRY_STRUCT = struct.Struct("<QII")    # offset u64, sequences u32, samples u32
TRAILER_STRUCT = struct.Struct("<Q")          # footer offset u64
U32_STRUCT = struct.Struct("<I")
SPARSE_SEQ_HDR_STRUCT = struct.Struct("<II")  # sample count u32, non-zero count u32
