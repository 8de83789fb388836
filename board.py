# 2026/10/18
FINAL_CELL = 100
BOARD_SIZE = 10
DIE_FACES = 6

# head/foot -> destination
SNAKES_AND_LADDERS = {
    # snakes
    99: 41, 95: 75, 92: 88, 89: 68, 74: 53,
    62: 24, 64: 20, 49: 11, 46: 25, 16: 6,
    # ladders
    2: 38, 7: 14, 8: 31, 15: 26, 21: 42,
    28: 84, 36: 44, 51: 67, 71: 91, 78: 98, 87: 94,
}


def is_snake(cell):
    return cell in SNAKES_AND_LADDERS and SNAKES_AND_LADDERS[cell] < cell


def is_ladder(cell):
    return cell in SNAKES_AND_LADDERS and SNAKES_AND_LADDERS[cell] > cell


def move(position, roll):
    """Cell reached from `position` after rolling `roll`.

    Overshooting the final cell leaves the token where it is.
    """
    if not 1 <= roll <= DIE_FACES:
        raise ValueError(f"invalid roll: {roll}")
    target = position + roll
    if target > FINAL_CELL:
        return position
    return SNAKES_AND_LADDERS.get(target, target)


def snaked_cells():
    """Cell numbers in grid order (top-left first), alternating row direction."""
    cells = [0] * (BOARD_SIZE * BOARD_SIZE)
    for visual_row in range(BOARD_SIZE):
        for col in range(BOARD_SIZE):
            value = visual_row * BOARD_SIZE + col + 1
            display_col = BOARD_SIZE - 1 - col if visual_row % 2 else col
            grid_row = BOARD_SIZE - 1 - visual_row
            cells[grid_row * BOARD_SIZE + display_col] = value
    return cells
