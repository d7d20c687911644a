GENDER_MAPPING = {
    "male": "male",
    "m": "male",
    "female": "female",
    "f": "female",
    "other": "other",
    "o": "other",
    "unknown": "unknown",
    "u": "unknown",
}

MRN_IDENTIFIER_TYPE = "MR"
