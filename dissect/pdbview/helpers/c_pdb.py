from dissect.cstruct import cstruct

pdb_def = """
/////////////////////////////////////////////////////////////////////////
// PDB 2.00 container definitions
/////////////////////////////////////////////////////////////////////////

struct DATA_STREAM_V2 {
    uint32 stream_size;         // 0xFFFFFFFF marks a free stream
    uint16 stream_page[2];
};

struct PDB2_HEADER {
    char signature[44];
    uint32 page_size;
    uint16 start_page;
    uint16 num_file_pages;
    DATA_STREAM_V2 root_stream;
};

struct ROOT_STREAM_V2 {
    uint16 dStreams;
    uint16 reserved;
    // DATA_STREAM_V2 streamLengths[dStreams] and the page index table follow
};

/////////////////////////////////////////////////////////////////////////
// PDB info stream (stream 1)
/////////////////////////////////////////////////////////////////////////

enum PDBIMPV : uint32 {
    vc2 = 19941610,
    vc4 = 19950623,
    vc41 = 19950814,
    vc50 = 19960307,
    vc98 = 19970604,
    vc70Dep = 19990604,         // VC 7.0 preview
    vc70 = 20000404,
};

struct PDB_GUID {
    uint32 Data1;
    uint16 Data2;
    uint16 Data3;
    uint8  Data4[8];
};

struct PDB_STREAM_HEADER {
    uint32 version;
    uint32 signature;
    uint32 age;
};

struct PDB_STREAM_HEADER_EX {
    PDB_STREAM_HEADER header;
    PDB_GUID guid;
};

/////////////////////////////////////////////////////////////////////////
// TPI stream (stream 2)
/////////////////////////////////////////////////////////////////////////

enum TPIIMPV : uint32 {
    impv40 = 19950410,
    impv41 = 19951122,
    impv50Interim = 19960307,
    impv50 = 19961031,
    impv70 = 19990903,
    impv80 = 20040203,
};

struct TPI_HEADER {          // type database header
    uint32 vers;                // version which created this TypeServer
    uint32 cbHdr;               // size of the header
    uint32 tiMin;               // lowest TI
    uint32 tiMax;               // highest TI + 1
    uint32 cbGprec;             // count of bytes used by the gprec which follows
};

/////////////////////////////////////////////////////////////////////////
// DBI stream (stream 3)
/////////////////////////////////////////////////////////////////////////

enum DBIIMPV : uint32 {
    vc41 = 930803,
    vc50 = 19960307,
    vc60 = 19970606,
    vc70 = 19990903,
};

struct OLD_DBI_HEADER {
    uint16 global_symbols_stream;
    uint16 private_symbols_stream;
    uint16 symbols_stream;
};

struct DBI_HEADER {
    uint32 signature;           // always 0xFFFFFFFF
    uint32 version;
    uint32 age;
    uint16 global_symbols_stream;
    uint16 dll_version;
    uint16 private_symbols_stream;
    uint16 dll_build_number;
    uint16 symbols_stream;
};
"""

c_pdb = cstruct()
c_pdb.load(pdb_def)


PDB2_SIGNATURE = b"Microsoft C/C++ program database 2.00\r\n\x1aJG\x00\x00"
PDB7_SIGNATURE = b"Microsoft C/C++ MSF 7.00\r\n\x1ADS\x00\x00\x00"

FREE_STREAM_SIZE = 0xFFFFFFFF
DBI_SIGNATURE = 0xFFFFFFFF

VALID_PAGE_SIZES = (0x400, 0x800, 0x1000)
VALID_START_PAGES = (0x2, 0x5, 0x9)

# Fixed stream indices within the root directory
ROOT_STREAM_INDEX = 0
PDB_STREAM_INDEX = 1
TPI_STREAM_INDEX = 2
DBI_STREAM_INDEX = 3
FPO_STREAM_INDEX = 5
