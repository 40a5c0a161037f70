FRAME_CENTER_X = 0.5


def head_turned_away(face, tolerance=0.12):
    left = face.left_eye_outer_corner()
    right = face.right_eye_outer_corner()

    mid_x = (left.x + right.x) / 2
    return abs(mid_x - FRAME_CENTER_X) > tolerance


def eyes_off_screen(face, tolerance=0.04):
    left_offset = abs(face.left_iris_center().x - face.left_eye_outer_corner().x)
    right_offset = abs(face.right_iris_center().x - face.right_eye_outer_corner().x)
    return left_offset > tolerance or right_offset > tolerance


def too_far(face, min_height=0.18):
    # face height as a share of the frame height
    return face.vertical_extent() < min_height
