"""Prompt builders for poster generation and the editing routes."""
from __future__ import annotations

from typing import List, Optional, Sequence

from posterai.schemas.edits import InsertImage, TextEdit
from posterai.schemas.poster import Dimensions, PosterFormData

REGION_COLOURS = ("red", "blue", "green", "yellow", "magenta")

_REFERENCE_STRENGTH = {
    "strong": "Follow the reference image very closely.",
    "normal": "Use the reference image as the main stylistic guide.",
    "weak": "Take only loose inspiration from the reference image.",
}


def _region_legend() -> List[str]:
    return [f"- {colour} area = region {i}" for i, colour in enumerate(REGION_COLOURS, start=1)]


def build_poster_prompt(form: PosterFormData, dimensions: Dimensions) -> str:
    lines = [
        "Create a professional poster design.",
        "",
        f"Size: {dimensions.width}x{dimensions.height}px ({form.orientation}, aspect ratio {dimensions.aspect_ratio})",
        f'Title: "{form.main_title}"',
    ]
    if form.sub_title:
        lines.append(f'Subtitle: "{form.sub_title}"')
    if form.free_text:
        lines.append(f'Additional text: "{form.free_text}"')
    lines.extend(
        [
            f"Main colour: {form.main_color}",
            f"Style: {form.taste}",
            f"Layout: {form.layout}",
            f"Purpose: {form.purpose}",
        ]
    )
    if form.character_description:
        lines.append(f"Characters: {form.character_description}")

    if form.uses_reference_image and form.detailed_prompt:
        lines.extend(
            [
                "",
                "IMPORTANT - detailed analysis of the sample image:",
                "The following design instructions were extracted from the uploaded sample image.",
                "Reproduce these elements as faithfully as possible:",
                "",
                form.detailed_prompt,
                "",
                "Recreate the layout, font styles, colours and placement based on the details above.",
            ]
        )
    elif form.uses_reference_image:
        lines.extend(
            [
                "",
                "IMPORTANT - about the reference image:",
                "The uploaded sample image shows the visual style to aim for. Analyse and reproduce:",
                "- colour palette (main, accent and background colours)",
                "- typography (fonts, sizes, placement, decoration)",
                "- layout structure (sections, whitespace, content blocks, alignment)",
                "- visual elements (graphics, illustrations, icons, patterns, ornaments)",
                "- overall mood and atmosphere",
                "",
                "Keep these design traits while incorporating the given title and text.",
            ]
        )
    if form.uses_reference_image and form.image_reference_strength:
        lines.append(_REFERENCE_STRENGTH[form.image_reference_strength])

    if form.materials_data:
        names = ", ".join(form.materials_names or [])
        lines.extend(
            [
                "",
                f"Material images: {len(form.materials_data)} attached after the prompt ({names}).",
                "Place them in the design without distorting their shape or colours.",
            ]
        )

    lines.extend(
        [
            "",
            "Produce a finished poster that fills the entire canvas. Extend the design to the edges with no margins.",
        ]
    )
    return "\n".join(lines)


def build_edit_prompt(edit_prompt: str) -> str:
    return "\n".join(
        [
            "Edit this image according to the instructions below. Do not change anything that is not mentioned.",
            "",
            "[Edit instructions]",
            edit_prompt,
            "",
            "[Important]",
            "- Modify only what is requested and keep layout, text and other visual elements as they are",
            "- Keep the style and quality of the original image",
            "- Make the result look natural",
        ]
    )


def build_region_edit_prompt(mask_edit_prompt: str, insert_usages: Optional[Sequence[str]] = None) -> str:
    usages = list(insert_usages or [])
    lines = ["Edit the coloured areas of the mask image as instructed.", ""]
    lines.extend(["[Edit instructions]", mask_edit_prompt, ""])
    if usages:
        lines.append("[Inserted images]")
        lines.extend(
            f"[Image {i}] {usage or 'place it in a suitable position'}" for i, usage in enumerate(usages, start=1)
        )
        lines.append("")
    lines.append("[Region colours]")
    lines.extend(_region_legend())
    lines.extend(
        [
            "",
            "[Important]",
            "1. Change only the coloured areas according to the instructions",
            "2. Each region matches the numbered instruction ('1:', '2:' and so on)",
            "3. Never change anything outside those areas",
        ]
    )
    if usages:
        lines.append("4. Place the inserted images according to their stated usage")
        lines.append("5. Keep the style and quality of the original image")
        lines.append("6. Blend the edited areas naturally with their surroundings")
    else:
        lines.append("4. Keep the style, quality and resolution of the original image")
        lines.append("5. Blend the edited areas naturally with their surroundings")
    return "\n".join(lines)


def build_insert_prompt(insert_prompt: str, insert_count: int) -> str:
    labels = ", ".join(f"image {i}" for i in range(2, insert_count + 2))
    return "\n".join(
        [
            f"Combine the following {insert_count + 1} images.",
            "",
            "[Image 1] Base image (poster)",
            "Keep its overall design, layout, text and colours as much as possible.",
            "",
            f"[{labels}] Images to insert",
            "Insert and composite these images into the base image following the instructions.",
            "",
            "[Placement]",
            insert_prompt,
            "",
            "[Important]",
            "1. Keep the inserted images' original shape, colours and design",
            "2. Do not warp or distort the inserted images",
            "3. Keep the base image's layout and text",
            "4. Adjust only shadows and lighting so the inserts blend in",
            "5. Aim for a high quality, natural finish",
        ]
    )


def build_unified_edit_prompt(
    *,
    text_edits: Sequence[TextEdit] = (),
    insert_images: Sequence[InsertImage] = (),
    mask_prompt: Optional[str] = None,
    has_mask: bool = False,
    general_prompt: Optional[str] = None,
    original_dimensions: Optional[Dimensions] = None,
) -> str:
    lines = [
        "You are an expert graphic designer. Please edit the attached image according to the following instructions.",
        "",
    ]

    if text_edits:
        lines.append("[Text Edits]")
        for i, edit in enumerate(text_edits, start=1):
            if edit.is_delete:
                lines.append(
                    f'{i}. REMOVE the text "{edit.original}" entirely from the image. Fill the area where the text '
                    "was located with a natural, seamless background that matches the surrounding colors and textures perfectly."
                )
                continue
            instruction = f'{i}. Replace "{edit.original}" with "{edit.new_content}"'
            if edit.color:
                instruction += f", change color to {edit.color}"
            if edit.font_size:
                instruction += f", change size to {edit.font_size}"
            lines.append(instruction)
        lines.append("")

    if has_mask and mask_prompt:
        lines.extend(
            [
                "[Region Specific Edit]",
                f"Edit ONLY the area indicated by the mask. Instruction: {mask_prompt}",
                "Maintain the overall style and composition of the image, only modifying the specified region.",
                "",
            ]
        )

    if general_prompt:
        lines.extend(["[General Edit]", general_prompt, ""])

    if insert_images:
        lines.append("[Image Insertion]")
        for i, image in enumerate(insert_images, start=1):
            lines.append(f"Integrate attached image #{i} as requested: {image.usage}")
        lines.append("")

    lines.append("[Quality Requirements]")
    if original_dimensions:
        lines.append(
            f"- OUTPUT RESOLUTION: The output image MUST be exactly "
            f"{original_dimensions.width}x{original_dimensions.height} pixels."
        )
    lines.extend(
        [
            "- ASPECT RATIO: Maintain the exact same aspect ratio as the input image. DO NOT crop or resize.",
            "- PIXEL PRESERVATION: Do NOT modify any pixels outside of the requested edit areas. "
            "Keep the background and other elements identical.",
            "- TEXT LAYOUT: Ensure that the existing text layout remains valid. "
            "NO shifting of elements that were not requested to be changed.",
            "- STRICT REMOVAL: When asked to delete text, ensure no traces or shadows of the original characters remain. "
            "The background must be perfectly and naturally restored.",
            "- QUALITY: Maintain high resolution and professional quality.",
        ]
    )
    return "\n".join(lines)
