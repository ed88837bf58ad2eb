import logging
import os
import sys
import time

import pmxdecode
import vmddecode

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(filename)s : %(levelname)s - %(message)s')


def summarize_model(model: pmxdecode.Model):
    print(f"   名前: {model.name} / {model.name_e}  (PMX {model.version:.1f}, {model.header})")
    print(f"   頂点: {len(model.vertices)}  面: {len(model.faces) // 3}  テクスチャ: {len(model.textures)}")
    print(f"   材質: {len(model.materials)}  ボーン: {len(model.bones)}  モーフ: {len(model.morphs)}")

    covered = sum(mat.face_count for mat in model.materials)
    if covered != len(model.faces):
        print(f"⚠ 材質の面数合計 {covered} が面インデックス数 {len(model.faces)} と一致しません。")

    morph_types: dict = {}
    for morph in model.morphs:
        morph_types[type(morph).__name__] = morph_types.get(type(morph).__name__, 0) + 1
    if morph_types:
        print("   モーフ種類: " + ", ".join(f"{k} {v}" for k, v in sorted(morph_types.items())))


def summarize_motion(anim: vmddecode.AnimationData):
    print(f"   モデル名: {anim.model_name}  (VMD rev.{anim.version})")
    print(f"   ボーン: {len(anim.keyframes)}  モーフ: {len(anim.morphs)}  カメラ: {len(anim.cameras)}  照明: {len(anim.lights)}")
    if anim.keyframes:
        print(f"   フレーム範囲: {anim.keyframes[0].frame} - {max(k.frame for k in anim.keyframes)}")


def test_load(path):
    if not os.path.isfile(path):
        print(f"❌ ファイルが存在しません: {path}")
        return

    is_motion = path.lower().endswith(".vmd")

    start_time = time.time()
    print(f"📂 ロード中: {path}")
    try:
        result = vmddecode.load(path) if is_motion else pmxdecode.load(path)
    except Exception as e:
        print(f"❌ ロード失敗: {e}")
        raise

    time_taken_ms = (time.time() - start_time) * 1000
    if result is None:
        print(f"❌ 対応していない形式です ({time_taken_ms:.2f} ms)")
        return

    print(f"✅ ロード成功: {time_taken_ms:.2f} ms")
    if is_motion:
        summarize_motion(result)
    else:
        summarize_model(result)


if __name__ == "__main__":
    if len(sys.argv) != 2:
        input_file = "test.pmx"
    else:
        input_file = sys.argv[1]

    if not os.path.isfile(input_file) or not input_file.lower().endswith((".pmx", ".vmd")):
        print("❌ 入力ファイルがPMX/VMD形式ではないか、存在しません。")
        sys.exit()

    test_load(input_file)
