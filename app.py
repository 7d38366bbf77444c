#!/usr/bin/env python3
"""
Schematic Chunker Web Interface

A simple Gradio-based web UI for converting voxel schematics to chunked,
RLE-compressed JSON or Lua data.

Run with: python app.py
Then open http://localhost:7860 in your browser
"""

import sys
from pathlib import Path
import tempfile
import warnings

import nbtlib

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

import gradio as gr
from schematic_chunker import FormatError, SchematicConverter
from schematic_chunker.builders import (
    DEMO_STYLES,
    demo_blocks,
    litematic_region,
    litematic_tree,
    sponge_v3_tree,
)


def process_schematic(
    schematic_file,
    naming: str,
    use_rle: bool,
    include_air: bool,
    output_format: str
):
    """
    Convert an uploaded schematic.

    Returns stats text and the path of the converted file.
    """
    if schematic_file is None:
        return "Please upload a schematic first.", None

    # gr.File hands over a path string (or a tempfile wrapper in older releases)
    input_path = Path(getattr(schematic_file, "name", schematic_file))

    naming_map = {
        "Full": "full",
        "Compact": "compact",
        "Stripped": "stripped",
    }
    converter = SchematicConverter(
        include_air=include_air,
        encoding="rle" if use_rle else "sparse",
        naming=naming_map.get(naming, "full"),
    )

    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        try:
            converter.load(input_path)
            result = converter.convert()
        except FormatError as e:
            return f"**Conversion failed:** {e}", None

    stats = result.stats
    size = stats.size

    stats_text = f"""## Conversion Complete!

| Metric | Value |
|--------|-------|
| Build Size | {size.width} x {size.height} x {size.length} |
| Total Blocks | {stats.total_blocks:,} |
| Non-Air Blocks | {stats.non_air_blocks:,} |
| Stored Blocks | {stats.stored_blocks:,} |
| Palette Entries | {stats.palette_size} |
| Chunks | {stats.chunk_count} |
| Y Range | {stats.min_y} - {stats.max_y} |

**Settings:** {naming} names, {'RLE' if use_rle else 'Sparse'}, air {'kept' if include_air else 'skipped'}
"""
    if stats.clamped_blocks:
        stats_text += f"\n**Dropped (outside 0-255):** {stats.clamped_blocks:,} blocks\n"
    for warning in caught:
        stats_text += f"\n> Warning: {warning.message}\n"

    # Create temp directory for exports
    export_dir = tempfile.mkdtemp(prefix="schem_")
    fmt = output_format.lower()
    output_path = converter.export(Path(export_dir) / f"{input_path.stem}.{fmt}", fmt)

    return stats_text, str(output_path)


def create_demo_schematic(style: str):
    """Write a demo schematic to a temp file for testing."""
    if not style:
        return None

    export_dir = Path(tempfile.mkdtemp(prefix="schem_demo_"))
    width, height, length, names = demo_blocks(style, 16)

    if style == "Tree":
        # Two overlapping copies exercise the multi-region path
        regions = {
            "Tree": litematic_region((0, 0, 0), (width, height, length), names),
            "Neighbour": litematic_region((12, 0, 4), (width, height, length), names),
        }
        path = export_dir / "demo_tree.litematic"
        nbtlib.File(litematic_tree(regions, name="Demo Tree")).save(path, gzipped=True)
    else:
        path = export_dir / f"demo_{style.lower()}.schem"
        nbtlib.File(sponge_v3_tree(width, height, length, names)).save(path, gzipped=True)

    return str(path)


# Build the Gradio interface
with gr.Blocks(title="Schematic Chunker") as app:

    gr.Markdown("""
    # Schematic Chunker
    ### Convert Voxel Schematics to Chunked Block Data

    Upload a schematic or try a demo, adjust the settings, and download the converted data!
    """)

    with gr.Row():
        # Left column - Input
        with gr.Column(scale=1):
            gr.Markdown("### Input Schematic")

            schematic_input = gr.File(
                label="Upload Schematic (.schematic, .schem, .litematic)",
                file_types=[".schematic", ".schem", ".litematic"]
            )

            with gr.Row():
                demo_dropdown = gr.Dropdown(
                    choices=list(DEMO_STYLES),
                    label="Or try a demo"
                )
                demo_btn = gr.Button("Load Demo")

            gr.Markdown("### Settings")

            naming = gr.Dropdown(
                choices=["Full", "Compact", "Stripped"],
                value="Full",
                label="Block Names"
            )

            use_rle = gr.Checkbox(value=True, label="RLE columns")
            include_air = gr.Checkbox(value=False, label="Include air")

            output_format = gr.Radio(
                choices=["Lua", "JSON"],
                value="Lua",
                label="Output Format"
            )

            convert_btn = gr.Button("Convert Schematic", variant="primary")

        # Middle column - Statistics
        with gr.Column(scale=2):
            gr.Markdown("### Statistics")

            stats_output = gr.Markdown(
                value="Upload a schematic and click 'Convert' to see results."
            )

        # Right column - Downloads
        with gr.Column(scale=1):
            gr.Markdown("### Download")

            file_output = gr.File(label="Converted Data")

            gr.Markdown("""
            ---
            **Tips:**
            - **Compact** = abbreviated states (`oak_stairs[f=n,h=t]`)
            - **Stripped** = base names only
            - **Lua** palette indices are 1-based
            - **JSON** palette indices are 0-based
            """)

    # Wire up events
    demo_btn.click(
        fn=create_demo_schematic,
        inputs=[demo_dropdown],
        outputs=[schematic_input]
    )

    convert_btn.click(
        fn=process_schematic,
        inputs=[
            schematic_input,
            naming,
            use_rle,
            include_air,
            output_format
        ],
        outputs=[stats_output, file_output]
    )


if __name__ == "__main__":
    print("\n" + "="*60)
    print("Schematic Chunker Web Interface")
    print("="*60)
    print("\nStarting server...")
    print("Open http://localhost:7860 in your browser\n")

    app.launch(
        server_name="0.0.0.0",
        server_port=7860,
        share=False
    )
