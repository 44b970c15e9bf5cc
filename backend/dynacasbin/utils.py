def mask_string(value: str, mask_char: str = "*") -> str:
    if not value:
        return ""

    length = len(value)
    num_mask = length // 2
    start = (length - num_mask) // 2
    end = start + num_mask

    return value[:start] + (mask_char * num_mask) + value[end:]
