from typing import Any, Dict, List, Mapping, Tuple


def _map_word(word: Any, include_polygons: bool) -> Dict[str, Any]:
    word = word if isinstance(word, Mapping) else {}
    mapped = {"text": word.get("text"), "confidence": word.get("confidence")}
    if include_polygons:
        mapped["boundingPolygon"] = word.get("boundingPolygon")
    return mapped


def extract_lines(read_result: Any, include_bounding_polygons: bool = False) -> Tuple[List[Dict[str, Any]], str]:
    """
    Flatten readResult.blocks[].lines[] into one ordered list of lines.

    Block grouping is dropped. Anything that does not look like a block or
    a line is skipped rather than rejected.

    :return: (lines, plain_text)
    """
    if not isinstance(read_result, Mapping) or not isinstance(read_result.get("blocks"), list):
        return [], ""

    lines = []
    for block in read_result["blocks"]:
        if not isinstance(block, Mapping) or not isinstance(block.get("lines"), list):
            continue

        for line in block["lines"]:
            if not isinstance(line, Mapping):
                continue

            words = line.get("words")
            if not isinstance(words, list):
                words = None

            text = line.get("text")
            if not text:
                # Pas de texte au niveau ligne : on le reconstruit depuis les mots
                text = " ".join(
                    str(w.get("text", "")) for w in (words or []) if isinstance(w, Mapping)
                )

            mapped = {"text": text}
            if include_bounding_polygons and isinstance(line.get("boundingPolygon"), list):
                mapped["boundingPolygon"] = line["boundingPolygon"]
            if words is not None:
                mapped["words"] = [_map_word(w, include_bounding_polygons) for w in words]

            lines.append(mapped)

    plain_text = "\n".join(str(line["text"]) for line in lines)
    return lines, plain_text


def normalize_analysis(
    analysis: Mapping[str, Any],
    include_bounding_polygons: bool = False,
    include_raw_read_result: bool = False,
) -> Dict[str, Any]:
    """Reshape an Image Analysis response body into the gateway's OCR result"""
    analysis = analysis if isinstance(analysis, Mapping) else {}
    read_result = analysis.get("readResult")

    lines, plain_text = extract_lines(read_result, include_bounding_polygons)

    result = {
        "plainText": plain_text,
        "lineCount": len(lines),
        "lines": lines,
        "modelVersion": analysis.get("modelVersion"),
        "metadata": analysis.get("metadata"),
    }
    if include_raw_read_result:
        result["rawReadResult"] = read_result
    return result
