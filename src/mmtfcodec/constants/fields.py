"""Wire field names of the MMTF map.

Field names follow MMTF 1.0. Array fields are grouped by
the kind of values they carry, which determines the codecs they accept.
"""

# Format version written by the encoder and the highest major version read
MMTF_VERSION = "1.0.0"
MAX_SUPPORTED_MAJOR_VERSION = 1

# Per-atom float arrays
FLOAT_FIELDS = (
    "xCoordList",
    "yCoordList",
    "zCoordList",
    "bFactorList",
    "occupancyList",
)

# Integer arrays
INT_FIELDS = (
    "atomIdList",
    "groupIdList",
    "sequenceIndexList",
    "groupTypeList",
    "secStructList",
    "bondAtomList",
    "bondOrderList",
    "groupsPerChain",
    "chainsPerModel",
)

# Single-character arrays ('' encodes as 0)
CHAR_FIELDS = (
    "altLocList",
    "insCodeList",
)

# Fixed-width string arrays
STRING_FIELDS = (
    "chainIdList",
    "chainNameList",
)

ARRAY_FIELDS = FLOAT_FIELDS + INT_FIELDS + CHAR_FIELDS + STRING_FIELDS

# Fields every wire map must carry
REQUIRED_FIELDS = (
    "mmtfVersion",
    "mmtfProducer",
    "numBonds",
    "numAtoms",
    "numGroups",
    "numChains",
    "numModels",
    "groupList",
    "xCoordList",
    "yCoordList",
    "zCoordList",
    "groupIdList",
    "groupTypeList",
    "chainIdList",
    "groupsPerChain",
    "chainsPerModel",
)

# Expected decoded length of each array field, keyed by the count it follows
FIELDS_PER_ATOM = (
    "xCoordList",
    "yCoordList",
    "zCoordList",
    "bFactorList",
    "occupancyList",
    "atomIdList",
    "altLocList",
)
FIELDS_PER_GROUP = (
    "groupIdList",
    "groupTypeList",
    "sequenceIndexList",
    "secStructList",
    "insCodeList",
)
FIELDS_PER_CHAIN = (
    "chainIdList",
    "chainNameList",
    "groupsPerChain",
)
FIELDS_PER_MODEL = ("chainsPerModel",)
