# pngkit

Tools for looking inside PNG files, written in plain Python with no
third-party dependencies.

## What it does

- **Chunks** (`pngkit.chunks`): read and validate the signature and IHDR
  chunk (`read_header`, giving a `PngHeader`), walk the chunk list
  (`iter_chunks`, yielding `Chunk` objects; `chunk_info` for names and
  lengths), pull out the non-critical chunks grouped by where they sit
  (`get_chunks`), build new chunks with length and CRC (`make_chunk`) and
  insert chunks into a file (`insert_chunks`). It also reports the filter
  type of every scanline (`filter_types`, and per Adam7 pass
  `filter_types_interlaced`), computes raw image sizes (`raw_size`) and
  reads packed 1/2/4/8-bit values (`palette_value`).
- **Deflate internals** (`pngkit.zlibinfo`): decompress a zlib stream or the
  IDAT data of a PNG and record, for every deflate block, its type, its
  sizes, its Huffman tree and its LZ77 symbols as `ZlibBlockInfo`
  (`inflate_with_info`, `extract_zlib_info`). The Adler-32 checksum is not
  verified.
- **ICC profiles** (`pngkit.icc`): parse the subset of an ICC profile that
  matters for RGB or gray to XYZ (`parse_icc`, giving an `IccProfile`; check
  it with `IccProfile.is_supported`), and evaluate its tone curves in both
  directions (`IccCurve.forward`, `IccCurve.backward`). `powf` is the
  approximate power function the curves use.
- **Chromaticity** (`pngkit.chromaticity`): 3x3 matrix helpers
  (`mul_matrix`, `mul_matrix_matrix`, `invert_matrix`), RGB-to-XYZ matrices
  from primaries in XYZ or xy (`chrm_matrix_xyz`, `chrm_matrix_xy`),
  whitepoint adaptation by XYZ scaling, Bradford or von Kries
  (`adaptation_matrix`), and comparison of the gAMA/cHRM/sRGB/iCCP model
  held in a `ColorInfo` (`is_srgb`, `models_equal`).
- **BMP** (`pngkit.bmp`): decode uncompressed 24- and 32-bit BMP data to
  RGBA bytes plus width and height (`decode_bmp`), and write RGB pixels as a
  24-bit BMP (`encode_bmp`).
- **gzip** (`pngkit.gzipfile`): wrap data in a single gzip member
  (`gzip_compress`).
- **Reports** (`pngkit.pnginfo`): text for a header (`describe_header`), the
  chunk list (`chunk_summary`), scanline filter types of a non-interlaced
  image (`describe_filter_types`) and an ASCII-art preview of RGBA pixels
  (`ascii_art`).

Errors are raised as exceptions: `PngFormatError`, `ZlibExtractError`
(with a numeric `code` and the `blocks` read so far), `IccError`,
`ColorError` and `BmpError`.

## Installing

```
pip install .
```

## Using it from Python

```python
from pathlib import Path

from pngkit.chunks import chunk_info, filter_types, read_header
from pngkit.zlibinfo import extract_zlib_info

png = Path("picture.png").read_bytes()

header = read_header(png)
print(header.width, header.height, header.colortype)
print(chunk_info(png))
print(filter_types(png))

for block in extract_zlib_info(png):
    print(block.btype, block.compressedbits, block.uncompressedbytes)
```

## Command line

Print the file size, dimensions, top-left pixel, header fields, text, time
and physical-size chunks, the chunk list, the scanline filter types and an
ASCII-art preview of a PNG file:

```
pngkit-info picture.png
pngkit-info --ignore_checksums picture.png
```

`--ignore_checksums` skips the zlib header and Adler-32 check when
decompressing the image data.

Compress a file with gzip; the output is written next to the input with
`.gz` appended to its name (an existing file of that name is overwritten):

```
pngkit-gzip notes.txt
```

## What it does not do

- It does not convert pixels between colour models. The ICC parser,
  tone curves and chromaticity matrices are there, but there is no function
  that applies them to image data to go to or from XYZ or sRGB.
- It is not a general PNG encoder or decoder. `pngkit-info` decodes pixels
  only for its own report and preview; nothing in the package writes PNG
  image data.

## Running the tests

```
pip install ".[test]"
pytest
```