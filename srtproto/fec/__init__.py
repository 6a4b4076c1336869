"""XOR-based forward error correction: filter configuration, encoder and decoder."""