"""WasteWatch: municipal waste complaints and recyclable pickup requests."""
